import ssl
from typing import Any, Dict, List, Optional

from aiohttp import web

from config import Config, Strings
from services.error_utils import handle_exception
from services.errors import ValidationError
from services.logging_utils import get_logger, wrap_handler
from services.session import SessionManager
from services.validator import validate_format
from services.wizard import WizardController
from services.wizard_models import FileHandle, Phase


class WebServer:
    """JSON API that lets a browser front end drive wizard sessions."""

    def __init__(self, sessions: SessionManager, auth_token: Optional[str] = None):
        """Initialize the web server."""
        self.sessions = sessions
        self.auth_token = Config.WEB_AUTH_TOKEN if auth_token is None else auth_token

    def _is_authorized(self, request: web.Request) -> bool:
        """Validate request with X-Auth-Token header when a token is configured.

        If no token is configured, authorization is not enforced.
        """
        if not self.auth_token:
            return True
        provided = request.headers.get("X-Auth-Token")
        return provided == self.auth_token

    @staticmethod
    def _error(message: str, status: int, state: Optional[Dict[str, Any]] = None) -> web.Response:
        body: Dict[str, Any] = {"error": message}
        if state is not None:
            body["state"] = state
        return web.json_response(body, status=status)

    async def _controller(self, request: web.Request) -> Optional[WizardController]:
        return await self.sessions.get(request.match_info["session_id"])

    @staticmethod
    async def _json_body(request: web.Request) -> Dict[str, Any]:
        if not request.can_read_body:
            return {}
        try:
            data = await request.json()
        except ValueError:
            raise ValidationError(Strings.INVALID_ANSWER)
        return data if isinstance(data, dict) else {}

    # --- Handlers ---

    async def list_questions(self, request: web.Request) -> web.Response:
        return web.json_response({"questions": self.sessions.questions.to_list()})

    async def create_session(self, request: web.Request) -> web.Response:
        """Start a new session or resume the one named in the body."""
        try:
            data = await self._json_body(request)
        except ValidationError as e:
            return self._error(e.message, 400)
        session_id, controller = await self.sessions.get_or_create(data.get("sessionId"))
        get_logger("web.session", {"sessionId": session_id}).info("session ready")
        return web.json_response(controller.snapshot())

    async def get_state(self, request: web.Request) -> web.Response:
        controller = await self._controller(request)
        if controller is None:
            return self._error(Strings.SESSION_NOT_FOUND, 404)
        return web.json_response(controller.snapshot())

    async def start(self, request: web.Request) -> web.Response:
        controller = await self._controller(request)
        if controller is None:
            return self._error(Strings.SESSION_NOT_FOUND, 404)
        await controller.start()
        return web.json_response(controller.snapshot())

    async def set_answer(self, request: web.Request) -> web.Response:
        controller = await self._controller(request)
        if controller is None:
            return self._error(Strings.SESSION_NOT_FOUND, 404)
        question_id = request.match_info["question_id"]
        if controller.questions.get(question_id) is None:
            return self._error(Strings.QUESTION_NOT_FOUND, 404)
        try:
            data = await self._json_body(request)
            await controller.on_answer_change(question_id, data.get("value"))
        except ValidationError as e:
            return self._error(handle_exception(e, question_id=question_id), 422, controller.snapshot())
        return web.json_response(controller.snapshot())

    async def toggle_option(self, request: web.Request) -> web.Response:
        controller = await self._controller(request)
        if controller is None:
            return self._error(Strings.SESSION_NOT_FOUND, 404)
        question_id = request.match_info["question_id"]
        if controller.questions.get(question_id) is None:
            return self._error(Strings.QUESTION_NOT_FOUND, 404)
        try:
            data = await self._json_body(request)
            option = data.get("option")
            if not isinstance(option, str):
                raise ValidationError(Strings.INVALID_OPTION, question_id)
            await controller.toggle_option(question_id, option)
        except ValidationError as e:
            return self._error(handle_exception(e, question_id=question_id), 422, controller.snapshot())
        return web.json_response(controller.snapshot())

    async def upload_files(self, request: web.Request) -> web.Response:
        """Accept a multipart batch of files for an upload question."""
        controller = await self._controller(request)
        if controller is None:
            return self._error(Strings.SESSION_NOT_FOUND, 404)
        question_id = request.match_info["question_id"]
        if controller.questions.get(question_id) is None:
            return self._error(Strings.QUESTION_NOT_FOUND, 404)

        if not request.content_type.startswith("multipart/"):
            return self._error(Strings.INVALID_ANSWER, 400)

        files: List[FileHandle] = []
        reader = await request.multipart()
        async for part in reader:
            if getattr(part, "filename", None) is None:
                continue
            data = await part.read(decode=False)
            files.append(FileHandle.from_bytes(
                part.filename,
                bytes(data),
                part.headers.get("Content-Type"),
            ))
        try:
            await controller.select_files(question_id, files)
        except ValidationError as e:
            return self._error(handle_exception(e, question_id=question_id), 422, controller.snapshot())
        return web.json_response(controller.snapshot())

    async def remove_file(self, request: web.Request) -> web.Response:
        controller = await self._controller(request)
        if controller is None:
            return self._error(Strings.SESSION_NOT_FOUND, 404)
        question_id = request.match_info["question_id"]
        if controller.questions.get(question_id) is None:
            return self._error(Strings.QUESTION_NOT_FOUND, 404)
        try:
            await controller.remove_file(question_id, int(request.match_info["index"]))
        except ValidationError as e:
            return self._error(handle_exception(e, question_id=question_id), 422, controller.snapshot())
        return web.json_response(controller.snapshot())

    async def next_question(self, request: web.Request) -> web.Response:
        """Check the current answer's format, then ask the wizard to advance."""
        controller = await self._controller(request)
        if controller is None:
            return self._error(Strings.SESSION_NOT_FOUND, 404)
        if controller.phase is Phase.ANSWERING:
            question = controller.current_question
            checked = validate_format(question, controller.answers.get(question.id))
            if not checked.valid:
                return self._error(checked.message, 422, controller.snapshot())
        result = await controller.next()
        if not result.valid and result.message:
            return self._error(result.message, 422, controller.snapshot())
        return web.json_response(controller.snapshot())

    async def previous_question(self, request: web.Request) -> web.Response:
        controller = await self._controller(request)
        if controller is None:
            return self._error(Strings.SESSION_NOT_FOUND, 404)
        await controller.previous()
        return web.json_response(controller.snapshot())

    async def restart(self, request: web.Request) -> web.Response:
        controller = await self._controller(request)
        if controller is None:
            return self._error(Strings.SESSION_NOT_FOUND, 404)
        await controller.restart()
        return web.json_response(controller.snapshot())

    @web.middleware
    async def auth_middleware(self, request: web.Request, handler):
        if not self._is_authorized(request):
            get_logger("web.auth").warning("unauthorized", extra={"path": request.path})
            return self._error(Strings.UNAUTHORIZED, 401)
        return await handler(request)

    @web.middleware
    async def error_middleware(self, request: web.Request, handler):
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except Exception as e:
            return self._error(handle_exception(e, path=request.path), 500)

    def create_app(self) -> web.Application:
        app = web.Application(middlewares=[self.error_middleware, self.auth_middleware])
        routes = [
            ("GET", "/questions", "web.questions", self.list_questions),
            ("POST", "/wizard", "web.create_session", self.create_session),
            ("GET", "/wizard/{session_id}", "web.state", self.get_state),
            ("POST", "/wizard/{session_id}/start", "web.start", self.start),
            ("PUT", "/wizard/{session_id}/answers/{question_id}", "web.answer", self.set_answer),
            ("POST", "/wizard/{session_id}/answers/{question_id}/toggle", "web.toggle", self.toggle_option),
            ("POST", "/wizard/{session_id}/answers/{question_id}/files", "web.upload", self.upload_files),
            (
                "DELETE",
                r"/wizard/{session_id}/answers/{question_id}/files/{index:\d+}",
                "web.remove_file",
                self.remove_file,
            ),
            ("POST", "/wizard/{session_id}/next", "web.next", self.next_question),
            ("POST", "/wizard/{session_id}/previous", "web.previous", self.previous_question),
            ("POST", "/wizard/{session_id}/restart", "web.restart", self.restart),
        ]
        for method, path, step_name, handler in routes:
            app.router.add_route(method, path, wrap_handler(step_name, handler))

        async def on_cleanup(app: web.Application) -> None:
            await self.sessions.close()

        app.on_cleanup.append(on_cleanup)
        return app

    @staticmethod
    async def run_server(sessions: Optional[SessionManager] = None) -> web.AppRunner:
        """Run the HTTP/HTTPS server"""
        server = WebServer(sessions or SessionManager())
        app = server.create_app()

        port = int(Config.PORT or "3000")
        host = Config.HOST
        ssl_context = None

        if Config.SSL_CERT_PATH and Config.SSL_KEY_PATH:
            ssl_context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
            ssl_context.load_cert_chain(
                certfile=Config.SSL_CERT_PATH,
                keyfile=Config.SSL_KEY_PATH
            )

        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, host, port, ssl_context=ssl_context)
        await site.start()
        get_logger("web.server").info("server started", extra={"host": host, "port": port})
        return runner


async def create_and_start_server(sessions: Optional[SessionManager] = None) -> web.AppRunner:
    """Start the API server and return its runner for shutdown."""
    return await WebServer.run_server(sessions)
