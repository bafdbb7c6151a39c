from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from chat_history.core.constants import DatabaseConstants
from chat_history.core.settings import settings


def _engine_options(database_url: str) -> dict:
    # SQLite (testes / desenvolvimento local) não aceita opções de pool
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": DatabaseConstants.CONNECTION_POOL_SIZE,
        "max_overflow": DatabaseConstants.CONNECTION_POOL_MAX_OVERFLOW,
        "pool_recycle": DatabaseConstants.CONNECTION_POOL_RECYCLE_SECONDS,
        "pool_pre_ping": True,
    }


# Motor de conexão a partir da URL configurada
engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

# Fábrica de sessões: cada instância é uma unidade de trabalho
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base para todos os modelos ORM
Base = declarative_base()


# Dependência do FastAPI: abre uma sessão por requisição
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
