# core/redis_client.py
"""
Redis client factory with connection pooling and error handling.

This module provides a singleton asyncio Redis client for:
1. The chat work queue (pending jobs)
2. Processing markers and cached chat results

The pool is created lazily and opens no connection until first use,
so importing this module never touches the network.
"""

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool, SSLConnection
from typing import Optional
from core.config import settings
from core.logger import logger


class RedisClient:
    """
    Singleton Redis client with connection pooling.

    Handles:
    - Automatic reconnection on failure
    - TLS/SSL for managed Redis with encryption in transit
    - Connection timeout configuration
    - Health checking
    """

    _instance: Optional['RedisClient'] = None
    _pool: Optional[ConnectionPool] = None
    _client: Optional[redis.Redis] = None

    def __new__(cls):
        """
        Singleton pattern ensures single connection pool across application.
        """
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def _initialize_pool(self):
        """
        Create connection pool with production-ready settings.
        """
        logger.info(
            "Initializing Redis connection pool",
            extra={
                "host": settings.REDIS_HOST,
                "port": settings.REDIS_PORT,
                "ssl": settings.REDIS_SSL,
                "max_connections": settings.REDIS_MAX_CONNECTIONS
            }
        )

        pool_kwargs = {
            "host": settings.REDIS_HOST,
            "port": settings.REDIS_PORT,
            "db": settings.REDIS_DB,
            "decode_responses": True,  # Auto-decode bytes to strings
            "socket_timeout": settings.REDIS_SOCKET_TIMEOUT,
            "socket_connect_timeout": settings.REDIS_SOCKET_CONNECT_TIMEOUT,
            "max_connections": settings.REDIS_MAX_CONNECTIONS,
            "retry_on_timeout": True,
            "health_check_interval": 30  # Check connection health every 30s
        }

        if settings.REDIS_SSL:
            pool_kwargs["connection_class"] = SSLConnection
            pool_kwargs["ssl_cert_reqs"] = settings.REDIS_SSL_CERT_REQS

        if settings.REDIS_PASSWORD:
            pool_kwargs["password"] = settings.REDIS_PASSWORD

        self._pool = ConnectionPool(**pool_kwargs)
        self._client = redis.Redis(connection_pool=self._pool)

    def get_client(self) -> redis.Redis:
        """
        Get Redis client instance.

        Returns:
            redis.Redis: asyncio Redis client bound to the shared pool
        """
        if self._client is None:
            self._initialize_pool()

        return self._client


"""
Global Redis client instance (singleton)
"""
redis_client_instance = RedisClient()


def get_redis() -> redis.Redis:
    """
    Get Redis client for dependency injection.

    Returns:
        redis.Redis: asyncio Redis client
    """
    return redis_client_instance.get_client()

