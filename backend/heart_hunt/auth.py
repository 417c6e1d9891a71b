from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from sqlalchemy import or_
from heart_hunt import db
from heart_hunt.models import User

auth = Blueprint('auth', __name__)

@auth.route('/register', methods=['POST', 'OPTIONS'])
def register():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not all([username, email, password]):
        return jsonify({"success": False, "message": "Username, email, and password are required"}), 400

    if User.query.filter(or_(User.username == username, User.email == email)).first():
        return jsonify({"success": False, "message": "Username or email already exists"}), 400

    new_user = User(username=username, email=email)
    new_user.set_password(password)
    db.session.add(new_user)
    db.session.commit()
    login_user(new_user)
    current_app.logger.info(f"[register] user={new_user.id} username={username}")
    return jsonify({"success": True, "user": new_user.to_dict()}), 201

@auth.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    username = (data.get('username') or '').strip()
    if email:
        user = User.query.filter_by(email=email).first()
    else:
        user = User.query.filter_by(username=username).first() if username else None
    if user and user.check_password(data.get('password') or ''):
        login_user(user, remember=True)
        return jsonify({"success": True, "user": user.to_dict()})
    return jsonify({"success": False, "message": "Invalid credentials"}), 401

@auth.route('/check_login', methods=['GET', 'OPTIONS'])
def check_login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200

    @login_required
    def protected_check():
        return jsonify({"success": True, "user": current_user.to_dict()})

    return protected_check()

@auth.route('/logout', methods=['POST', 'OPTIONS'])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})

@auth.route('/user/<string:user_id>', methods=['GET'])
def get_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({"success": False, "message": "User not found"}), 404
    return jsonify({"success": True, "user": user.to_dict()})

@auth.route('/users', methods=['GET'])
def get_users():
    users = User.query.order_by(User.total_score.desc(), User.username.asc()).all()
    return jsonify({"success": True, "users": [u.to_dict() for u in users]})
