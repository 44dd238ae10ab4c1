"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from fastapi import Depends

from woodshop.assets import AssetHost, CloudinaryAssetHost, InMemoryAssetHost
from woodshop.config import get_settings
from woodshop.contact import Web3FormsClient
from woodshop.db import DbClient, InMemoryDbClient, PostgresDbClient
from woodshop.errors import InternalError
from woodshop.signin import AdminAllowList, GoogleOAuthClient, SignInService

_db_client: DbClient | None = None
_asset_host: AssetHost | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so content and sessions persist across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_asset_host() -> AssetHost:
    global _asset_host
    if _asset_host:
        return _asset_host

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.cloudinary_cloud_name:
        _asset_host = InMemoryAssetHost()
    else:
        _asset_host = CloudinaryAssetHost(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key or "",
            api_secret=settings.cloudinary_api_secret or "",
        )
    return _asset_host


def get_contact_client() -> Web3FormsClient:
    return Web3FormsClient(access_key=get_settings().web3forms_access_key)


def get_signin_service(db: DbClient = Depends(get_db_client)) -> SignInService:
    settings = get_settings()
    return SignInService(
        db=db,
        allow_list=AdminAllowList.from_csv(settings.authorized_admin_emails),
        session_max_age=settings.session_max_age_seconds,
    )


def get_google_client() -> GoogleOAuthClient:
    settings = get_settings()
    return GoogleOAuthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_redirect_uri,
    )


def check_cleanup_backends(db: DbClient, host: AssetHost) -> None:
    """
    Refuse to reconcile a real asset host against the fallback in-memory DB.
    An empty project table would mark every remote folder as orphaned.
    """
    if get_settings().use_in_memory_backends:
        return
    if isinstance(db, InMemoryDbClient) and not isinstance(host, InMemoryAssetHost):
        raise InternalError(
            "Cleanup requires a configured database; set DATABASE_URL"
        )
