"""Dependency injection container for the converter."""

import boto3
from botocore.config import Config as BotoConfig
from dependency_injector import providers
from dependency_injector.containers import DeclarativeContainer
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from webp_converter.config import Config
from webp_converter.infrastructure.s3_client import S3Client
from webp_converter.infrastructure.s3_object_source import S3ObjectSource


def _create_session(config: Config) -> boto3.Session:
    """Create boto3 session with the static credentials from config."""
    return boto3.Session(
        aws_access_key_id=config.s3_access_key,
        aws_secret_access_key=config.s3_secret_key,
        region_name=config.s3_region,
    )


def _create_s3_boto_client(session: boto3.Session, config: Config):
    """Create the S3 client for the configured endpoint, with timeouts."""
    return session.client(
        "s3",
        endpoint_url=config.endpoint_url,
        config=BotoConfig(
            connect_timeout=config.s3_timeout,
            read_timeout=config.s3_timeout,
            retries={"max_attempts": 3, "mode": "standard"},
            max_pool_connections=max(10, config.max_workers * 2),
        ),
    )


def _create_engine(config: Config) -> Engine:
    """Create the ledger engine, sized for one connection per worker."""
    if config.database_url.startswith("sqlite"):
        return create_engine(
            config.database_url,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        config.database_url,
        pool_size=config.max_workers,
        pool_pre_ping=True,
    )


def _create_ledger(engine: Engine, s3_client: S3Client, config: Config):
    """Factory for ConversionLedger to avoid circular import."""
    from webp_converter.services.ledger import ConversionLedger

    if config.track_source:
        return ConversionLedger(
            engine,
            folder=config.s3_folder,
            endpoint=s3_client.endpoint_url,
            bucket=config.s3_bucket,
        )
    return ConversionLedger(engine, folder=config.s3_folder)


def _create_s3_downloader(s3_client: S3Client, config: Config):
    """Factory for S3Downloader to avoid circular import."""
    from webp_converter.services.s3_downloader import S3Downloader

    return S3Downloader(s3_client, bucket=config.s3_bucket, staging_dir=config.staging_dir)


def _create_s3_uploader(s3_client: S3Client, config: Config):
    """Factory for S3Uploader to avoid circular import."""
    from webp_converter.services.s3_uploader import S3Uploader

    return S3Uploader(s3_client, bucket=config.s3_bucket)


class DependenciesContainer(DeclarativeContainer):
    """DI container for the application."""

    config = providers.Dependency(instance_of=Config)

    session = providers.Singleton(_create_session, config=config)

    # S3 dependency chain
    s3_boto_client = providers.Singleton(
        _create_s3_boto_client,
        session=session,
        config=config,
    )

    s3_client = providers.Singleton(
        S3Client,
        client=s3_boto_client,
    )

    object_source = providers.Singleton(
        S3ObjectSource,
        s3_client=s3_client,
    )

    s3_downloader = providers.Singleton(
        _create_s3_downloader,
        s3_client=s3_client,
        config=config,
    )

    s3_uploader = providers.Singleton(
        _create_s3_uploader,
        s3_client=s3_client,
        config=config,
    )

    # Ledger
    engine = providers.Singleton(_create_engine, config=config)

    ledger = providers.Singleton(
        _create_ledger,
        engine=engine,
        s3_client=s3_client,
        config=config,
    )
