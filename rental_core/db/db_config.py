from contextlib import contextmanager
from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..exceptions import ErrorCode, ServiceError, ValidationError
from ..utils.logger import get_logger
from .db_base import Base


class DatabaseConfig(BaseModel):
    """Connection parameters for the rental database."""

    db_type: str = "postgres"
    database: str
    host: Optional[str] = None
    port: str = "5432"
    username: Optional[str] = None
    password: Optional[str] = None
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    echo: bool = False
    development_mode: bool = False

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def from_url(cls, url: str, **overrides) -> "DatabaseConfig":
        """Build a config from a DATABASE_URL style connection string."""
        parsed = make_url(url)
        if parsed.get_backend_name() == "sqlite":
            return cls(db_type="sqlite", database=parsed.database or ":memory:", **overrides)
        if parsed.get_backend_name() != "postgresql":
            raise ValidationError(
                f"Unsupported database type: {parsed.get_backend_name()}",
                error_code=ErrorCode.INVALID_FORMAT,
                field="db_type",
                value=parsed.get_backend_name(),
            )
        return cls(
            db_type="postgres",
            host=parsed.host,
            port=str(parsed.port or 5432),
            database=parsed.database,
            username=parsed.username,
            password=parsed.password,
            **overrides,
        )

    def get_connection_string(self) -> str:
        if self.db_type.lower() == "postgres":
            if not all([self.host, self.database, self.username, self.password]):
                raise ValidationError(
                    "Missing required Postgres configuration parameters",
                    error_code=ErrorCode.MISSING_REQUIRED,
                    field="database_config",
                    value={"host": self.host, "database": self.database, "username": self.username},
                )
            return (
                f"postgresql+psycopg://{self.username}:{self.password}@"
                f"{self.host}:{self.port}/{self.database}"
            )
        elif self.db_type.lower() == "sqlite":
            return f"sqlite:///{self.database}"
        raise ValidationError(
            f"Unsupported database type: {self.db_type}",
            error_code=ErrorCode.INVALID_FORMAT,
            field="db_type",
            value=self.db_type,
        )

    def __repr__(self) -> str:
        """String representation with masked password for security."""
        return (
            f"DatabaseConfig("
            f"db_type='{self.db_type}', "
            f"host='{self.host}', "
            f"port='{self.port}', "
            f"database='{self.database}', "
            f"username='{self.username}', "
            f"password='***')"
        )


class DatabaseManager:
    """
    Owns the engine and session factory for one database.

    Constructed by the host and handed around inside the ServiceContext.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine = self._create_engine()
        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def _create_engine(self) -> Engine:
        connection_string = self.config.get_connection_string()
        if self.config.db_type.lower() == "sqlite":
            connect_args = {"check_same_thread": False}
            if self.config.database == ":memory:":
                # Every session must see the same in-memory database
                return create_engine(
                    connection_string,
                    echo=self.config.echo,
                    connect_args=connect_args,
                    poolclass=StaticPool,
                )
            return create_engine(
                connection_string, echo=self.config.echo, connect_args=connect_args
            )
        return create_engine(
            connection_string,
            echo=self.config.echo,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_timeout=self.config.pool_timeout,
        )

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        if self.config.development_mode:
            Base.metadata.drop_all(self.engine)
        else:
            raise ServiceError(
                "Cannot drop tables: not in development mode",
                error_code=ErrorCode.CONFIGURATION_ERROR,
                operation="drop_tables",
                development_mode=self.config.development_mode,
            )

    def get_session(self) -> Session:
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Unit of work: commit on success, roll back on any exception.

        Usage:
            with db_manager.session_scope() as session:
                session.add(record)
        """
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        self.engine.dispose()


def get_development_config(database: str = ":memory:", echo: bool = False) -> DatabaseConfig:
    """
    Get SQLite configuration for development and tests.
    """
    return DatabaseConfig(
        db_type="sqlite",
        database=database,
        echo=echo,
        development_mode=True,
    )


def import_all_models():
    """Import all models to ensure they're registered with SQLAlchemy metadata."""
    from sqlalchemy.orm import configure_mappers

    from .db_contract_models import Contract, ContractSignature, ContractStateTransition  # noqa
    from .db_inflation_models import InflationIndex  # noqa
    from .db_payment_models import Payment  # noqa
    from .db_property_models import Building, Room  # noqa
    from .db_tenant_models import Tenant  # noqa

    configure_mappers()


def init_db(db_manager: DatabaseManager) -> None:
    """
    Initialize the database, creating all tables.

    Args:
        db_manager: DatabaseManager instance to use for table creation
    """
    get_logger().info("Initializing DB", extra={"db_type": db_manager.config.db_type})
    import_all_models()
    db_manager.create_tables()
