"""
Explicitly constructed dependencies shared by every service.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from ..config import AppConfig
from ..db.db_config import DatabaseConfig, DatabaseManager, init_db
from ..utils.date_utils import utc_now


@dataclass
class ServiceContext:
    """
    Configuration, database handle and clock for one host process.

    The host builds one of these at startup (or per test) and passes it to
    each service constructor.
    """

    config: AppConfig
    db_manager: DatabaseManager
    clock: Callable[[], datetime] = field(default=utc_now)

    def now(self) -> datetime:
        return self.clock()

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        clock: Optional[Callable[[], datetime]] = None,
        create_tables: bool = False,
    ) -> "ServiceContext":
        """Build the database manager from config.database and wrap everything up."""
        db_config = DatabaseConfig.from_url(
            config.database.connection_string,
            pool_size=config.database.pool_size,
            max_overflow=config.database.max_overflow,
            pool_timeout=config.database.pool_timeout,
            echo=config.database.echo,
            development_mode=config.is_development,
        )
        db_manager = DatabaseManager(db_config)
        if create_tables:
            init_db(db_manager)
        return cls(config=config, db_manager=db_manager, clock=clock or utc_now)
