from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from volleyqueue import db
from volleyqueue.models import User
from volleyqueue.services.rotation import engine

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the volleyball queue server!'})

@main.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password')
    display_name = (data.get('display_name') or '').strip() or username
    if not username or not password:
        return jsonify({'error': 'Missing username or password'}), 400
    if len(username) > 64 or len(display_name) > 64:
        return jsonify({'error': 'Username and display name must be at most 64 characters'}), 400

    if User.query.filter_by(username=username).first():
        return jsonify({'error': 'Username already exists'}), 400

    user = User(username=username, display_name=display_name)
    user.set_password(password)
    user.is_admin = username in current_app.config.get('ADMIN_USERNAMES', [])
    db.session.add(user)
    db.session.commit()
    login_user(user, remember=True)
    current_app.logger.info(f"[register] user={user.id} username={username}")
    # Join the running rotation at the back of the order
    engine.ensure_seeded()

    return jsonify(user.to_dict()), 201

@main.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    user = User.query.filter_by(username=data.get('username')).first()
    if user and user.check_password(data.get('password') or ''):
        login_user(user, remember=True)
        return jsonify(user.to_dict())
    return jsonify({'error': 'Invalid username or password'}), 401

@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})

@main.route('/me')
@login_required
def me():
    return jsonify(current_user.to_dict())
