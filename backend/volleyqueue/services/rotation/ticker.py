from volleyqueue import socketio
from . import engine
from .errors import StoreUnavailable
from .notify import broadcast_transition

_started_apps = set()


def start_auto_advance(app) -> None:
    """Run ``advance_if_due`` on a fixed cadence in a background task.

    - No-ops in TESTING mode or when AUTO_ADVANCE_INTERVAL_SEC is 0
    - One ticker per app per process; extra tickers would only lose races
    - Store outages are logged and retried on the next tick
    """
    if app.config.get('TESTING'):
        return
    interval = int(app.config.get('AUTO_ADVANCE_INTERVAL_SEC', 0))
    if interval <= 0:
        return
    if id(app) in _started_apps:
        app.logger.info("[ticker-skip] auto-advance already running")
        return
    _started_apps.add(id(app))
    app.logger.info(f"[ticker-set] auto-advance every {interval}s")

    def _worker():
        while True:
            socketio.sleep(interval)
            run_tick(app)

    socketio.start_background_task(_worker)


def run_tick(app):
    """One advance attempt. Failures are logged so the loop keeps ticking."""
    with app.app_context():
        try:
            result = engine.advance_if_due()
            if result.was_advanced:
                app.logger.info(
                    f"[ticker-fire] reason={result.reason} active={result.state.active_member_id}"
                )
                broadcast_transition(result.reason, result.state)
        except StoreUnavailable:
            app.logger.warning("[ticker] store unavailable, retrying next tick")
            return None
        except Exception:
            app.logger.exception("[ticker] tick failed, retrying next tick")
            return None
        return result
