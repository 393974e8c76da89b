"""FastAPI entrypoint: OAuth endpoints, Apps Script / Sheets relay endpoints, dashboard."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates

from gas_relay import env as env_loader
from gas_relay.errors import (
    ConfigurationError,
    InvalidRequestError,
    MissingCodeError,
    RelayError,
    TokenExchangeError,
)
from gas_relay.google_apis import ScriptClient, SheetsClient, script_edit_url
from gas_relay.google_oauth import AuthSession, create_auth_session
from gas_relay.schemas import (
    AuthorizeResponse,
    ContainerBoundScriptResponse,
    CreateContainerBoundScriptRequest,
    CreateSpreadsheetRequest,
    HealthResponse,
    RunScriptRequest,
    RunScriptResponse,
    SpreadsheetResponse,
    TokenRequest,
    TokenResponse,
    UpdateScriptContentRequest,
    UpdateScriptContentResponse,
)
from gas_relay.token_store import CredentialSet

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

ENDPOINTS = [
    ("GET", "/health", "Health check"),
    ("GET", "/mcp/authorize", "OAuth authorization URL"),
    ("GET", "/oauth/callback", "OAuth redirect target (code exchange)"),
    ("POST", "/oauth/token", "Set OAuth token manually"),
    ("POST", "/create_spreadsheet", "Create spreadsheet"),
    ("POST", "/create_container_bound_script", "Create container bound script"),
    ("PUT", "/update_script_content", "Update script content"),
    ("POST", "/run_script", "Execute script function"),
]


def get_auth_session(request: Request) -> AuthSession:
    return request.app.state.auth_session


def create_app(auth_session: AuthSession | None = None, initialize_auth: bool = True) -> FastAPI:
    """
    Build the relay app around one AuthSession. With initialize_auth the OAuth client is
    set up at startup; a configuration error there is logged and retried on /mcp/authorize.
    """
    session = auth_session if auth_session is not None else create_auth_session()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("GAS MCP relay %s starting on port %s (%s)", env_loader.VERSION, env_loader.port(), env_loader.environment())
        if initialize_auth:
            try:
                session.initialize()
                logger.info("Server initialization completed")
            except ConfigurationError as e:
                logger.warning("Authentication not ready (%s). Complete OAuth flow via /mcp/authorize", e)
        yield

    app = FastAPI(
        title="GAS MCP Relay",
        description="OAuth relay for Google Apps Script and Sheets",
        version=env_loader.VERSION,
        lifespan=lifespan,
    )
    app.state.auth_session = session
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
        )

    _register_routes(app)
    return app


def _oauth_result(request: Request, status_code: int, **context) -> HTMLResponse:
    return templates.TemplateResponse(request, "oauth_result.html", context, status_code=status_code)


def _register_routes(app: FastAPI) -> None:
    @app.get("/", response_class=HTMLResponse)
    def dashboard(request: Request, session: AuthSession = Depends(get_auth_session)) -> HTMLResponse:
        """Status page with the endpoint list and setup steps."""
        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {
                "auth_status": session.status().value,
                "endpoints": ENDPOINTS,
                "port": env_loader.port(),
                "version": env_loader.VERSION,
                "environment": env_loader.environment(),
                "platform": env_loader.platform(),
            },
        )

    @app.get("/health", response_model=HealthResponse)
    def health(session: AuthSession = Depends(get_auth_session)) -> HealthResponse:
        return HealthResponse(
            timestamp=datetime.now(timezone.utc).isoformat(),
            environment=env_loader.environment(),
            port=env_loader.port(),
            has_auth=session.has_credentials,
            has_refresh_token=session.has_refresh_token,
            auth_status=session.status().value,
            version=env_loader.VERSION,
        )

    @app.get("/mcp/authorize", response_model=AuthorizeResponse)
    def authorize(session: AuthSession = Depends(get_auth_session)) -> AuthorizeResponse:
        """Return the Google consent URL (initializes the OAuth client on first use)."""
        return AuthorizeResponse(auth_url=session.authorization_url())

    @app.get("/oauth/callback", response_class=HTMLResponse)
    @app.get("/auth/callback", response_class=HTMLResponse)
    def oauth_callback(
        request: Request,
        code: str | None = None,
        error: str | None = None,
        session: AuthSession = Depends(get_auth_session),
    ) -> HTMLResponse:
        """Exchange the code Google redirected with; show the refresh token to save."""
        try:
            if not code and error:
                raise MissingCodeError(f"Authorization was not completed ({error}). Please try again.")
            credentials = session.exchange_code(code)
        except MissingCodeError as e:
            return _oauth_result(request, 400, success=False, title="Authorization Failed", message=e.message)
        except (TokenExchangeError, ConfigurationError) as e:
            return _oauth_result(request, 500, success=False, title="OAuth Error", message=e.message)
        return _oauth_result(
            request,
            200,
            success=True,
            title="Authorization Successful!",
            message="MCP Server is now authorized to access your Google account.",
            refresh_token=credentials.refresh_token,
        )

    @app.post("/oauth/token", response_model=TokenResponse)
    def set_token(body: TokenRequest, session: AuthSession = Depends(get_auth_session)) -> TokenResponse:
        """Exchange a pasted authorization code, or install tokens issued elsewhere."""
        if body.code:
            session.exchange_code(body.code)
        elif body.refresh_token or body.access_token:
            session.set_credentials(CredentialSet(access_token=body.access_token, refresh_token=body.refresh_token))
            logger.info("Tokens set manually")
        else:
            raise InvalidRequestError('Provide either "code" or "refresh_token".')
        return TokenResponse(auth_status=session.status().value, has_refresh_token=session.has_refresh_token)

    @app.post("/create_spreadsheet", response_model=SpreadsheetResponse)
    def create_spreadsheet(
        body: CreateSpreadsheetRequest | None = None,
        session: AuthSession = Depends(get_auth_session),
    ) -> SpreadsheetResponse:
        opts = body or CreateSpreadsheetRequest()
        spreadsheet = SheetsClient(session.require_credentials()).create_spreadsheet(opts.title)
        return SpreadsheetResponse(
            spreadsheet_id=spreadsheet["spreadsheetId"],
            url=spreadsheet.get("spreadsheetUrl"),
        )

    @app.post("/create_container_bound_script", response_model=ContainerBoundScriptResponse)
    def create_container_bound_script(
        body: CreateContainerBoundScriptRequest | None = None,
        session: AuthSession = Depends(get_auth_session),
    ) -> ContainerBoundScriptResponse:
        """Create a script project bound to a container (spreadsheetId is accepted for parentId)."""
        opts = body or CreateContainerBoundScriptRequest()
        if not opts.parent_id:
            raise InvalidRequestError(
                'Missing required parameter. Please provide either "parentId" or "spreadsheetId".',
                hint='Use "parentId" for container-bound script creation',
            )
        project = ScriptClient(session.require_credentials()).create_project(opts.parent_id, opts.title)
        script_id = project["scriptId"]
        return ContainerBoundScriptResponse(
            script_id=script_id,
            url=script_edit_url(script_id),
            parent_id=opts.parent_id,
        )

    @app.put("/update_script_content", response_model=UpdateScriptContentResponse)
    def update_script_content(
        body: UpdateScriptContentRequest | None = None,
        session: AuthSession = Depends(get_auth_session),
    ) -> UpdateScriptContentResponse:
        opts = body or UpdateScriptContentRequest()
        if not opts.script_id or opts.files is None:
            raise InvalidRequestError("scriptId and files are required")
        files = [f.model_dump(exclude_none=True) for f in opts.files]
        result = ScriptClient(session.require_credentials()).update_content(opts.script_id, files)
        return UpdateScriptContentResponse(result=result)

    @app.post("/run_script", response_model=RunScriptResponse)
    def run_script(
        body: RunScriptRequest | None = None,
        session: AuthSession = Depends(get_auth_session),
    ) -> RunScriptResponse:
        """Run a function ("functionName" or "function") with positional parameters."""
        opts = body or RunScriptRequest()
        if not opts.script_id or not opts.function_name:
            raise InvalidRequestError('scriptId and functionName (or "function") are required')
        operation = ScriptClient(session.require_credentials()).run(opts.script_id, opts.function_name, opts.parameters)
        return RunScriptResponse(result=operation, response=operation.get("response"))


app = create_app()


def serve() -> None:
    """Console entry point: configure logging and run uvicorn on PORT."""
    import uvicorn

    logging.basicConfig(
        level=env_loader.log_level(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=env_loader.port())


if __name__ == "__main__":
    serve()
