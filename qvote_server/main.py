import eventlet
eventlet.monkey_patch()
import logging
from . import config
from .auth import SharedSecretVerifier
from .bulletin import create_app, broadcast_board
from .data import VoterStore
from .mudamos import MudamosSigner
from .state import EventState
from qvote_common.models import ENDED

logger = logging.getLogger("qvote_server.main")


def periodic_broadcast(socketio, store):
    states = [EventState(event) for event in store.events.values()]
    while any(state.get_state() != ENDED for state in states):
        broadcast_board(socketio, store)
        socketio.sleep(config.BROADCAST_INTERVAL)
    broadcast_board(socketio, store)


def main():
    store = None
    if config.DATA_PATH:
        store = VoterStore.load(config.DATA_PATH)
    if store is None:
        store = VoterStore.demo(path=config.DATA_PATH or None)
        store.save()
        logger.info("Seeded demo event and voters.")
    if not config.APP_SECRET:
        logger.warning("APP_SECRET is not set; every signing callback will be rejected.")

    app, socketio = create_app(store, MudamosSigner(), SharedSecretVerifier(config.APP_SECRET))
    socketio.start_background_task(periodic_broadcast, socketio, store)
    for event in store.events.values():
        logger.info(f"Dashboard for {event.title}: http://{config.HOST}:{config.PORT}/event?id={event.id}")
    socketio.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    main()
