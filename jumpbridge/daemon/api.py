"""HTTP API through which editor plugins talk to the daemon."""

from aiohttp import web
from loguru import logger

from .bus import Event
from .models import Category

EVENT_TYPES = {
    "document.opened",
    "document.will_save",
    "editor.active_changed",
    "workspace.folder_added",
}
SAVE_REASONS = {"manual", "auto"}


def create_api_app(daemon) -> web.Application:
    """Create the aiohttp application with routes."""
    app = web.Application()
    app['daemon'] = daemon

    app.router.add_post('/events', handle_event)
    app.router.add_get('/find', handle_find)
    app.router.add_get('/status', handle_status)
    app.router.add_post('/shutdown', handle_shutdown)

    return app


def _bad_request(message: str) -> web.Response:
    return web.json_response(
        {'error': {'code': 'invalid_request', 'message': message}},
        status=400
    )


def parse_editor_event(data) -> Event:
    """Validate an editor event body; raises ValueError when malformed."""
    if not isinstance(data, dict):
        raise ValueError("body must be a JSON object")

    event_type = data.get('type')
    if event_type not in EVENT_TYPES:
        raise ValueError(f"unknown event type: {event_type!r}")

    path = data.get('path')
    if not isinstance(path, str) or not path:
        raise ValueError("path is required")

    # No default: the tracker records only scheme "file"
    scheme = data.get('scheme')
    if not isinstance(scheme, str) or not scheme:
        raise ValueError("scheme is required")

    payload = {'path': path, 'scheme': scheme}
    if event_type == 'document.will_save':
        reason = data.get('reason', 'manual')
        if reason not in SAVE_REASONS:
            raise ValueError(f"reason must be one of {sorted(SAVE_REASONS)}")
        payload['reason'] = reason

    return Event(type=event_type, data=payload, source='http')


async def handle_event(request: web.Request) -> web.Response:
    """Accept one editor event and queue it for the tracker."""
    daemon = request.app['daemon']

    try:
        data = await request.json()
    except ValueError:
        return _bad_request("body must be valid JSON")

    try:
        event = parse_editor_event(data)
    except ValueError as e:
        return _bad_request(str(e))

    queued = daemon.event_bus.emit_nowait(event)
    if not queued:
        return web.json_response({'status': 'dropped'}, status=503)

    return web.json_response({'status': 'accepted'}, status=202)


async def handle_find(request: web.Request) -> web.Response:
    """Run a jumper query; results keep jumper's order."""
    daemon = request.app['daemon']

    try:
        target = Category(request.query.get('type', 'files'))
    except ValueError:
        return _bad_request("type must be 'files' or 'directories'")

    query = request.query.get('q', '')
    results = await daemon.bridge.queries.query(target, query)

    return web.json_response({'query': query, 'type': target.value, 'results': results})


async def handle_status(request: web.Request) -> web.Response:
    daemon = request.app['daemon']
    try:
        return web.json_response(daemon.get_status())
    except Exception as e:
        logger.error(f"Status error: {e}")
        return web.json_response(
            {'error': {'code': 'internal_error', 'message': str(e)}},
            status=500
        )


async def handle_shutdown(request: web.Request) -> web.Response:
    daemon = request.app['daemon']
    logger.info("Shutdown requested over HTTP")
    daemon.request_shutdown()
    return web.json_response({'status': 'stopping'})
