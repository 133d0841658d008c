import logging
from contextlib import asynccontextmanager
from typing import List, Optional
from fastapi import FastAPI, Depends, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from common.documentation import install_openapi
from common.error_handling import Forbidden, InvalidToken, MissingToken, StoreError, add_error_handlers
from common.schemas import (
    AccountProfile, LoginRequest, LoginResponse, MessageResponse, SignupRequest, SignupResponse,
    TransactionRecord, TransferRequest,
)
from common.security import TokenClaims
from common.settings import Settings, get_settings
from common.tracing import tracing_middleware
from ledger_service.context import ServiceContext, build_context

logger = logging.getLogger(__name__)

def get_context(request: Request) -> ServiceContext:
    return request.app.state.context

async def current_user(
    authorization: Optional[str] = Header(None),
    ctx: ServiceContext = Depends(get_context),
) -> TokenClaims:
    if not authorization:
        raise MissingToken()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise InvalidToken()
    return ctx.credentials.validate_token(token)

def create_app(settings: Settings = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    ctx = build_context(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"🚀 Ledger service listening on port {settings.port}")
        yield
        ctx.dispose()

    app = FastAPI(title="FastPay Ledger Service", version="1.0.0",
                  description="Peer-to-peer payments between FastPay accounts", lifespan=lifespan)
    app.state.context = ctx

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(tracing_middleware(settings.service_name))
    add_error_handlers(app)
    install_openapi(app)

    @app.post("/api/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
    async def signup(req: SignupRequest, ctx: ServiceContext = Depends(get_context)):
        payment_id = await ctx.store_breaker.call(ctx.accounts.register, req.name, req.email, req.password)
        return SignupResponse(message="User registered successfully!", upi_id=payment_id)

    @app.post("/api/login", response_model=LoginResponse)
    async def login(req: LoginRequest, ctx: ServiceContext = Depends(get_context)):
        result = await ctx.store_breaker.call(ctx.accounts.authenticate, req.email, req.password)
        return LoginResponse(message="Login successful!", token=result.token,
                             upi_id=result.payment_id, balance=result.balance)

    @app.get("/api/user/{upi_id}", response_model=AccountProfile, dependencies=[Depends(current_user)])
    async def get_user(upi_id: str, ctx: ServiceContext = Depends(get_context)):
        account = await ctx.store_breaker.call(ctx.accounts.get_public_profile, upi_id)
        return AccountProfile.model_validate(account)

    @app.post("/api/transaction", response_model=MessageResponse)
    async def transaction(req: TransferRequest, user: TokenClaims = Depends(current_user),
                          ctx: ServiceContext = Depends(get_context)):
        if req.sender_upi_id != user.payment_id:
            raise Forbidden()
        await ctx.store_breaker.call(ctx.transfers.transfer, req.sender_upi_id, req.receiver_upi_id, req.amount)
        return MessageResponse(message="Transaction successful!")

    @app.get("/api/transactions/{upi_id}", response_model=List[TransactionRecord], dependencies=[Depends(current_user)])
    async def transactions(upi_id: str, ctx: ServiceContext = Depends(get_context)):
        entries = await ctx.store_breaker.call(ctx.transfers.history, upi_id)
        return [TransactionRecord.model_validate(entry) for entry in entries]

    @app.get("/health")
    async def health(ctx: ServiceContext = Depends(get_context)):
        try:
            store_ok = await ctx.store_breaker.call(ctx.ping_store)
        except StoreError as e:
            logger.error(f"❌ Store health check failed: {e}")
            store_ok = False
        return {
            "ok": store_ok,
            "service": settings.service_name,
            "store": ctx.store_breaker.get_state(),
        }

    return app
