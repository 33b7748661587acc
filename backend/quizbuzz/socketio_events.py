from flask_socketio import emit
from flask import request
from quizbuzz import socketio, get_engine
from typing import Dict, Any

# Socket id -> namespace it connected on, so cross-client sends reach it
_sid_namespace: Dict[str, str] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _deliver(sid: str, payload: Dict[str, Any]) -> None:
    socketio.emit('message', payload, to=sid, namespace=_sid_namespace.get(sid, '/ws'))


def handle_connect(auth=None):
    sid = _get_sid()
    _sid_namespace[sid] = request.namespace  # type: ignore
    emit('connected', {'message': f'Connected to {request.namespace}'})  # type: ignore
    get_engine().process_connect(sid, _deliver)


def handle_disconnect(*args):
    # Flask-SocketIO 5.4+ passes a disconnect reason
    sid = _get_sid()
    try:
        get_engine().process_disconnect(sid, _deliver)
    finally:
        _sid_namespace.pop(sid, None)


def handle_message(data):
    get_engine().process(_get_sid(), data, _deliver)


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('message', handle_message, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
