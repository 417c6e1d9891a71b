from heart_hunt import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Use SocketIO server so leaderboard pushes work in dev
    socketio.run(app, debug=True)
