import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import config, crud
from .auth import get_password_hash
from .database import SessionLocal, engine
from .errors import StorefrontError
from .log import configure_logging
from .models import AccountStatus, Base, Role, User
from .routers import admin_router, auth_router, customer_router, order_router, product_router, seller_router

logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Storefront Service",
    description="Marketplace backend: catalog, orders and seller fulfilment",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create database tables
Base.metadata.create_all(bind=engine)

# Include routers
app.include_router(auth_router.router)
app.include_router(admin_router.router)
app.include_router(product_router.router)
app.include_router(product_router.category_router)
app.include_router(order_router.router)
app.include_router(seller_router.router)
app.include_router(customer_router.router)


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc), "error_type": type(exc).__name__, **exc.extra()},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error", path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Database error"})


def init_admin_user() -> None:
    db = SessionLocal()
    try:
        if crud.get_user_by_email(db, config.ADMIN_EMAIL) is None:
            db.add(
                User(
                    name="Administrator",
                    email=config.ADMIN_EMAIL.lower(),
                    hashed_password=get_password_hash(config.ADMIN_PASSWORD),
                    role=Role.ADMIN.value,
                    account_status=AccountStatus.APPROVED.value,
                )
            )
            db.commit()
            logger.info("Admin user created", email=config.ADMIN_EMAIL)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Admin user initialisation failed")
        raise
    finally:
        db.close()


@app.on_event("startup")
def _startup() -> None:
    configure_logging()
    init_admin_user()


@app.get("/")
def root():
    return {
        "service": "Storefront Service",
        "status": "running",
        "version": "1.0.0"
    }


@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "service": "storefront"
    }
