from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from .config import settings
from .base import Base

engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def get_session():
    async with SessionLocal() as session:
        yield session

def _import_models():
    # registers every table on Base.metadata
    from app.modules.organizations import models as _organizations  # noqa: F401
    from app.modules.identity import models as _identity  # noqa: F401
    from app.modules.invitations import models as _invitations  # noqa: F401
    from app.modules.tickets import models as _tickets  # noqa: F401
    from app.modules.comments import models as _comments  # noqa: F401
    from app.modules.activity import models as _activity  # noqa: F401
    from app.modules.events import outbox as _outbox  # noqa: F401

async def init_models():
    ## In dev-only "create_all" mode, keep old behavior; otherwise, migrations own the schema.
    if settings.DB_MANAGE.lower() == "create_all":
        _import_models()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
