"""
Database Management and Connection Handling

Async engine and session factory management for the data-access layer.
"""

import contextlib
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import MetaData, text, event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from .config import DatabaseSettings, get_settings
from .exceptions import DatabaseError
from .logging import get_logger

logger = get_logger(__name__)

# Database metadata and base model for host applications
metadata = MetaData()
Base = declarative_base(metadata=metadata)


class DatabaseManager:
    """Async database connection and session manager"""
    
    def __init__(self, database_settings: Optional[DatabaseSettings] = None):
        self.settings = database_settings or get_settings().database
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._initialized = False
        self._connection_stats = {
            'created_connections': 0,
            'closed_connections': 0,
        }
    
    @property
    def is_initialized(self) -> bool:
        return self._initialized
    
    async def initialize(self):
        """Initialize the engine and session factory"""
        if self._initialized:
            return
        
        try:
            self._create_engine()
            self._setup_session_factory()
            self._setup_connection_events()
            await self._verify_connection()
            
            self._initialized = True
            logger.info("Database manager initialized successfully")
            
        except Exception as e:
            logger.error(f"Failed to initialize database manager: {str(e)}")
            if self.engine is not None:
                await self.engine.dispose()
                self.engine = None
            raise DatabaseError(f"Database initialization failed: {str(e)}") from e
    
    def _create_engine(self):
        """Create async database engine with connection pooling"""
        engine_kwargs: Dict[str, Any] = {
            'echo': self.settings.DB_ECHO,
            'pool_pre_ping': True,  # Verify connections before use
        }
        
        # A single shared connection keeps in-memory SQLite databases alive
        if self.settings.is_sqlite:
            engine_kwargs.update({
                'poolclass': StaticPool,
                'connect_args': {"check_same_thread": False}
            })
        else:
            engine_kwargs.update({
                'pool_size': self.settings.DB_POOL_SIZE,
                'max_overflow': self.settings.DB_MAX_OVERFLOW,
                'pool_timeout': self.settings.DB_POOL_TIMEOUT,
                'pool_recycle': self.settings.DB_POOL_RECYCLE,
            })
        
        self.engine = create_async_engine(self.settings.DB_URL, **engine_kwargs)
        logger.info(f"Created async database engine: {self.engine.url.drivername}")
    
    def _setup_session_factory(self):
        """Setup async session factory"""
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=self.settings.DB_EXPIRE_ON_COMMIT,
            autoflush=self.settings.DB_AUTOFLUSH,
        )
    
    def _setup_connection_events(self):
        """Setup connection pool event listeners"""
        @event.listens_for(self.engine.sync_engine, "connect")
        def on_connect(dbapi_conn, connection_record):
            self._connection_stats['created_connections'] += 1
            logger.debug("Database connection created")
        
        @event.listens_for(self.engine.sync_engine, "close")
        def on_close(dbapi_conn, connection_record):
            self._connection_stats['closed_connections'] += 1
            logger.debug("Database connection closed")
    
    async def _verify_connection(self):
        """Verify database connection is working"""
        async with self.engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
        logger.info("Database connection verified successfully")
    
    async def create_all(self, target_metadata: Optional[MetaData] = None):
        """Create all tables of the given metadata (defaults to Base.metadata)"""
        await self.initialize()
        async with self.engine.begin() as connection:
            await connection.run_sync((target_metadata or metadata).create_all)
    
    async def drop_all(self, target_metadata: Optional[MetaData] = None):
        """Drop all tables of the given metadata (defaults to Base.metadata)"""
        await self.initialize()
        async with self.engine.begin() as connection:
            await connection.run_sync((target_metadata or metadata).drop_all)
    
    @contextlib.asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get async database session, closed on exit; commits are left to the caller"""
        if not self._initialized:
            await self.initialize()
        
        session = self.session_factory()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
    
    def get_stats(self) -> Dict[str, Any]:
        """Get connection statistics"""
        return dict(self._connection_stats, initialized=self._initialized)
    
    async def close(self):
        """Dispose the engine and its pooled connections"""
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Async database engine disposed")
        self.engine = None
        self.session_factory = None
        self._initialized = False
