"""Core database functionality and configuration.

This module provides the engine, connection pooling and session handling
shared by the API routes and the maintenance scripts.
"""

from contextlib import contextmanager
import logging
from pathlib import Path
from typing import Optional, Dict, Any, Generator
import os

from sqlalchemy import create_engine, Engine, inspect
from sqlalchemy.orm import scoped_session, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..models import Base
from ..allocation.errors import HousingError
from ..config.environment import IS_PRODUCTION_ENVIRONMENT

logger = logging.getLogger(__name__)

class DatabaseConfig:
    """Database configuration settings."""
    
    def __init__(
        self,
        sqlite_path: Optional[Path] = None,
        postgres_url: Optional[str] = None,
        echo: bool = False,
        pool_size: int = 3,
        max_overflow: int = 4,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        pool_pre_ping: bool = True
    ):
        """
        SQLite in development, PostgreSQL in production.

        ``sqlite_path`` falls back to ``SQLITE_PATH`` and then to
        ``data/housing.db``; ``":memory:"`` gives a throwaway database for
        tests. In production ``postgres_url`` falls back to ``DATABASE_URL``
        and a ``ValueError`` is raised when neither is set. The pool settings
        only apply to PostgreSQL.
        """
        if IS_PRODUCTION_ENVIRONMENT:
            self.postgres_url = postgres_url or os.environ.get('DATABASE_URL')
            if not self.postgres_url:
                raise ValueError(
                    "Database URL must be provided either via postgres_url parameter "
                    "or DATABASE_URL environment variable when in production environment"
                )
            self.sqlite_path = None
        else:
            self.postgres_url = None
            self.sqlite_path = (
                sqlite_path
                or os.environ.get('SQLITE_PATH')
                or Path(__file__).parent.parent.parent / 'data' / 'housing.db'
            )
        
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.pool_recycle = pool_recycle
        self.pool_pre_ping = pool_pre_ping
    
    @property
    def connection_url(self) -> str:
        """Get the database connection URL based on environment."""
        if not IS_PRODUCTION_ENVIRONMENT:
            if not self.sqlite_path:
                raise ValueError("SQLite path not configured")
            return f"sqlite:///{self.sqlite_path}"
        else:
            if not self.postgres_url:
                raise ValueError("PostgreSQL URL not configured")
            return self.postgres_url
    
    def get_engine_args(self) -> Dict[str, Any]:
        """Get SQLAlchemy engine arguments based on configuration."""
        args = {"echo": self.echo}
        
        # SQLite-specific configuration
        if not IS_PRODUCTION_ENVIRONMENT:
            args["connect_args"] = {"check_same_thread": False}
            args["poolclass"] = StaticPool
        
        # PostgreSQL-specific configuration
        else:
            args.update({
                "pool_size": self.pool_size,
                "max_overflow": self.max_overflow,
                "pool_timeout": self.pool_timeout,
                "pool_recycle": self.pool_recycle,
                "pool_pre_ping": self.pool_pre_ping
            })
        
        return args

class DatabaseError(Exception):
    """Base exception for database-related errors."""
    pass

class ConnectionError(DatabaseError):
    """Raised when there are issues connecting to the database."""
    pass

class SessionError(DatabaseError):
    """Raised when there are issues with database sessions."""
    pass

class Database:
    """Process-wide engine and scoped session factory (singleton)."""
    
    _instance = None
    _tables_checked = False
    
    def __new__(cls, config: Optional[DatabaseConfig] = None):
        """Ensure only one instance exists."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance
    
    def __init__(self, config: Optional[DatabaseConfig] = None):
        """Initialize the database manager if not already initialized."""
        if self._initialized:
            return
        
        self.config = config or DatabaseConfig()
        self.engine: Optional[Engine] = None
        self._session_factory = sessionmaker()
        self._scoped_session = scoped_session(self._session_factory)
        self._initialized = True
        
        # Initialize engine on creation
        self._setup_engine()
    
    def _setup_engine(self) -> None:
        """Set up the SQLAlchemy engine."""
        try:
            if self.config.sqlite_path and str(self.config.sqlite_path) != ':memory:':
                Path(self.config.sqlite_path).parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(
                self.config.connection_url,
                **self.config.get_engine_args()
            )
            self._session_factory.configure(bind=self.engine)
        except Exception as e:
            raise ConnectionError(f"Failed to create database engine: {e}") from e
    
    def reconfigure(self, config: DatabaseConfig) -> None:
        """Point the global instance at another database (scripts and tests)."""
        self._scoped_session.remove()
        if self.engine is not None:
            self.engine.dispose()
        self.config = config
        self._tables_checked = False
        self._setup_engine()
    
    def init_db(self) -> None:
        """Initialize the database schema."""
        if not self.engine:
            raise ConnectionError("Database engine not initialized")
        
        try:
            with self.engine.begin() as conn:
                Base.metadata.create_all(conn)
            self._tables_checked = True
            logger.info("Database schema initialized successfully")
        except Exception as e:
            raise DatabaseError(f"Failed to initialize database schema: {e}") from e
    
    def drop_db(self) -> None:
        """Drop every table known to the models."""
        if not self.engine:
            raise ConnectionError("Database engine not initialized")
        
        self._scoped_session.remove()
        with self.engine.begin() as conn:
            Base.metadata.drop_all(conn)
        self._tables_checked = False
    
    def ensure_tables_exist(self) -> None:
        """Ensure all required database tables exist."""
        if not self._tables_checked:
            if not self.engine:
                raise ConnectionError("Database engine not initialized")
            
            try:
                inspector = inspect(self.engine)
                existing_tables = inspector.get_table_names()
                required_tables = set(Base.metadata.tables)
                
                if not all(table in existing_tables for table in required_tables):
                    logger.info("Some tables missing, initializing database schema")
                    with self.engine.begin() as conn:
                        Base.metadata.create_all(conn)
                    logger.info("Database schema initialized successfully")
                
                self._tables_checked = True
                
            except Exception as e:
                raise DatabaseError(f"Failed to verify/create database schema: {e}") from e
    
    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Transactional scope: commits on success, rolls back on any error.

        ``HousingError`` subclasses propagate unchanged so routes can map them
        to responses; anything else is wrapped in ``SessionError``.
        """
        # Ensure tables exist before providing a session
        self.ensure_tables_exist()
        
        session = self._scoped_session()
        try:
            yield session
            session.commit()
        except HousingError:
            session.rollback()
            raise
        except Exception as e:
            session.rollback()
            raise SessionError(f"Database session error: {e}") from e
        finally:
            session.close()
            self._scoped_session.remove()

# Create the global database instance with default configuration
db = Database()
