from sqlmodel import SQLModel, create_engine, Session

from stagelocker.core.config import get_settings

settings = get_settings()

# SQLite necesita compartir la conexión entre los hilos del threadpool
_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(
    settings.database_url,
    echo=settings.sql_echo,
    pool_pre_ping=True,
    connect_args=_connect_args,
)


def create_db_and_tables():
    """Crear todas las tablas en la base de datos"""
    # Registrar los modelos en el metadata antes de crear
    import stagelocker.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    """Generador de sesiones de base de datos"""
    with Session(engine) as session:
        yield session
