import click
from flask import current_app
from flask.cli import with_appcontext

from heart_hunt.errors import HeartHuntError
from heart_hunt.models import DIFFICULTIES, User
from heart_hunt.services.games.loop import GameLoop, Phase, PlayerContext
from heart_hunt.services.games.puzzles import HeartApiClient, MiniGameBank
from heart_hunt.services.games.recorders import ServiceRecorder


def build_loop(user: User, difficulty: str, puzzles=None, mini_games=None, recorder=None, clock=None) -> GameLoop:
    """Wire a GameLoop from the app config; collaborators may be swapped in."""
    cfg = current_app.config
    kwargs = {}
    if clock is not None:
        kwargs['clock'] = clock
    return GameLoop(
        PlayerContext(user_id=user.id, username=user.username),
        difficulty,
        puzzles=puzzles or HeartApiClient(cfg['HEART_API_URL'], timeout=cfg['HEART_API_TIMEOUT_SEC']),
        mini_games=mini_games or MiniGameBank(),
        recorder=recorder or ServiceRecorder(),
        chances=int(cfg.get('MINI_GAME_CHANCES', 3)),
        durations={
            'Easy': int(cfg.get('EASY_DURATION_SEC', 60)),
            'Medium': int(cfg.get('MEDIUM_DURATION_SEC', 40)),
            'Hard': int(cfg.get('HARD_DURATION_SEC', 30)),
            'Expert': int(cfg.get('EXPERT_DURATION_SEC', 15)),
        },
        mini_game_duration=int(cfg.get('MINI_GAME_DURATION_SEC', 20)),
        **kwargs,
    )


def _ask_answer(loop: GameLoop):
    """Prompt until a whole number or 'q' is entered; None means quit."""
    while True:
        raw = click.prompt(f'How many? ({loop.time_left()}s left, q to quit)', default='', show_default=False)
        raw = raw.strip()
        if raw.lower() == 'q':
            return None
        try:
            return int(raw)
        except ValueError:
            click.echo('Please enter a whole number.')


def _show(loop: GameLoop, puzzle) -> None:
    label = 'Count the pearls' if loop.in_mini_game else 'Count the hearts'
    click.echo(f'\n{label}: {puzzle.question or "(nothing here)"}')


@click.command('play')
@click.option('--user', 'username', required=True, help='Username of an existing player.')
@click.option('--difficulty', type=click.Choice(DIFFICULTIES), default='Easy', show_default=True)
@with_appcontext
def play_command(username, difficulty):
    """Play the counting game in the terminal; the result is saved on exit."""
    user = User.query.filter_by(username=username).first()
    if not user:
        raise click.ClickException(f'No user named {username}')
    loop = build_loop(user, difficulty)
    try:
        _show(loop, loop.start())
        while loop.phase != Phase.GAME_OVER:
            if loop.phase == Phase.OFFER:
                click.echo(f'{loop.last_outcome.value.capitalize()}! {loop.progress.credits} second chance(s) left.')
                if click.confirm('Try the mini-game?', default=True):
                    _show(loop, loop.accept_second_chance())
                else:
                    loop.decline_second_chance()
                continue
            if loop.phase in (Phase.LOADING, Phase.CORRECT):
                _show(loop, loop.next_question())
                continue
            answer = _ask_answer(loop)
            if answer is None:
                loop.quit()
                break
            outcome = loop.submit(answer)
            click.echo(f'{outcome.value} | score {loop.progress.score}')
    except HeartHuntError as exc:
        raise click.ClickException(exc.message)
    finally:
        loop.close()
    result = loop.progress.result or {}
    click.echo(f"\nGame over. Score {result.get('score', 0)}, "
               f"{result.get('correctAnswers', 0)}/{result.get('totalQuestions', 0)} correct.")
