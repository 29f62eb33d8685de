from volleyqueue import create_app, socketio
from volleyqueue.services.rotation.ticker import start_auto_advance

app = create_app()

if __name__ == '__main__':
    # Use SocketIO server to enable websockets in dev
    start_auto_advance(app)
    socketio.run(app, debug=True)
