"""
HTTP routes for the woodshop backend API.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse

from woodshop.assets import AssetHost, AssetHostError
from woodshop.auth import current_identity, is_admin, require_admin
from woodshop.config import get_settings
from woodshop.contact import Web3FormsClient
from woodshop.db import DbClient, ProjectRecord
from woodshop.dependencies import (
    check_cleanup_backends,
    get_asset_host,
    get_contact_client,
    get_db_client,
    get_google_client,
    get_signin_service,
)
from woodshop.errors import ApiError, Forbidden, InternalError, NotFound, ValidationError
from woodshop.identity import Identity, session_token_from_request
from woodshop.projects import (
    format_project_date,
    known_project_folders,
    list_projects,
    list_tags,
)
from woodshop.reconciler import delete_asset, reconcile
from woodshop.schemas import (
    AboutResponse,
    CleanupResponse,
    ContactRequest,
    DeleteAssetRequest,
    HomeResponse,
    ListProjectsResponse,
    OkResponse,
    ProjectCreateRequest,
    ProjectOrderRequest,
    ProjectResponse,
    ProjectUpdateRequest,
    SessionResponse,
    SiteSettingsResponse,
    SiteSettingUpdate,
)
from woodshop.signin import GoogleOAuthClient, SignInService
from woodshop.site_settings import (
    ABOUT_KEYS,
    HOME_KEYS,
    SiteSettingsStore,
    parse_what_we_do,
)

logger = logging.getLogger(__name__)

router = APIRouter()

OAUTH_STATE_COOKIE = "woodshop_oauth_state"
SIGNIN_ERROR_PATH = "/admin/error"


def _project_response(project: ProjectRecord) -> ProjectResponse:
    return ProjectResponse(
        **project.as_dict(),
        displayDate=format_project_date(project.created_at, project.date_is_month_only),
    )


@router.get("/cleanup", response_model=CleanupResponse)
def cleanup_orphaned_folders(
    _admin: Identity = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
    host: AssetHost = Depends(get_asset_host),
):
    """
    Delete project image folders that no saved project references and whose
    oldest image is older than the configured age. Safe to call from cron.
    """
    settings = get_settings()
    check_cleanup_backends(db, host)
    try:
        deleted = reconcile(
            host,
            known_project_folders(db),
            timedelta(seconds=settings.orphaned_folder_age_seconds),
            namespace=settings.cloudinary_projects_folder,
        )
    except Exception as exc:
        logger.exception("Orphaned folder cleanup failed")
        message = exc.message if isinstance(exc, ApiError) else str(exc)
        raise InternalError(message or "Cleanup failed") from exc

    logger.info("Cleanup deleted %d orphaned folder(s)", len(deleted))
    if deleted:
        message = f"Deleted {len(deleted)} orphaned folder(s)."
    else:
        message = "No orphaned folders to delete."
    return CleanupResponse(deleted=deleted, message=message)


@router.post("/delete-asset", response_model=OkResponse)
def delete_uploaded_asset(
    payload: DeleteAssetRequest,
    _admin: Identity = Depends(require_admin),
    host: AssetHost = Depends(get_asset_host),
):
    """Remove a single abandoned upload, e.g. a cancelled hero image."""
    asset_id = payload.assetId.strip()
    if not asset_id:
        raise ValidationError("Missing or invalid assetId")
    try:
        delete_asset(host, asset_id)
    except ApiError as exc:
        raise InternalError(exc.message) from exc
    return OkResponse()


@router.get("/site-settings", response_model=SiteSettingsResponse)
def get_site_settings(
    keys: str = Query(..., min_length=1, description="Comma-separated setting keys"),
    db: DbClient = Depends(get_db_client),
):
    key_list = [k.strip() for k in keys.split(",") if k.strip()]
    if not key_list:
        raise ValidationError("At least one key is required")
    return SiteSettingsResponse(settings=SiteSettingsStore(db).get_many(key_list))


@router.patch("/site-settings", response_model=OkResponse)
def update_site_setting(
    payload: SiteSettingUpdate,
    _admin: Identity = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    SiteSettingsStore(db).set(payload.key, payload.value)
    return OkResponse()


@router.get("/about", response_model=AboutResponse)
def about_page(
    identity: Optional[Identity] = Depends(current_identity),
    db: DbClient = Depends(get_db_client),
):
    settings = SiteSettingsStore(db).get_many(ABOUT_KEYS)
    return AboutResponse(
        settings=settings,
        whatWeDo=parse_what_we_do(settings["about.whatWeDo"]),
        isAdmin=is_admin(identity, db),
    )


@router.get("/home", response_model=HomeResponse)
def home_page(
    identity: Optional[Identity] = Depends(current_identity),
    db: DbClient = Depends(get_db_client),
):
    return HomeResponse(
        settings=SiteSettingsStore(db).get_many(HOME_KEYS),
        isAdmin=is_admin(identity, db),
    )


@router.get("/projects", response_model=ListProjectsResponse)
def get_projects(
    page: int = Query(1, ge=1),
    tag: str | None = Query(None),
    db: DbClient = Depends(get_db_client),
):
    projects, has_more = list_projects(db, page=page, tag=tag)
    return ListProjectsResponse(
        projects=[_project_response(p) for p in projects],
        page=page,
        hasMore=has_more,
        tags=list_tags(db),
    )


def _normalize_tags(tags: list[str]) -> list[str]:
    return sorted({t.strip() for t in tags if t.strip()})


@router.post("/projects", response_model=ProjectResponse, status_code=201)
def create_project(
    payload: ProjectCreateRequest,
    _admin: Identity = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    title = payload.title.strip()
    if not title:
        raise ValidationError("Title is required")
    folder = (payload.cloudinaryFolder or "").strip() or None
    record = ProjectRecord(
        title=title,
        description=payload.description,
        tags=_normalize_tags(payload.tags),
        cloudinary_folder=folder,
        image_public_ids=payload.imagePublicIds,
        sort_order=payload.sortOrder,
        date_is_month_only=payload.dateIsMonthOnly,
    )
    if payload.createdAt is not None:
        record.created_at = payload.createdAt
    # Render before saving so a record that cannot be displayed is never stored.
    response = _project_response(record)
    db.create_project(record)
    logger.info("Created project %s", record.id)
    return response


@router.put("/projects/order", response_model=OkResponse)
def reorder_projects(
    payload: ProjectOrderRequest,
    _admin: Identity = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    """Rewrite gallery order: each listed project takes its list position."""
    project_ids = payload.projectIds
    if len(set(project_ids)) != len(project_ids):
        raise ValidationError("Duplicate project ids")
    missing = [pid for pid in project_ids if db.get_project(pid) is None]
    if missing:
        raise ValidationError(f"Unknown project ids: {', '.join(missing)}")
    db.reorder_projects(project_ids)
    logger.info("Reordered %d project(s)", len(project_ids))
    return OkResponse()


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: str,
    payload: ProjectUpdateRequest,
    _admin: Identity = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    project = db.get_project(project_id)
    if project is None:
        raise NotFound("Project not found")

    fields = payload.model_dump(exclude_unset=True)
    changes: dict = {}
    if "title" in fields:
        title = (fields["title"] or "").strip()
        if not title:
            raise ValidationError("Title is required")
        changes["title"] = title
    if "description" in fields:
        changes["description"] = fields["description"] or ""
    if "tags" in fields:
        changes["tags"] = _normalize_tags(fields["tags"] or [])
    if "cloudinaryFolder" in fields:
        changes["cloudinary_folder"] = (fields["cloudinaryFolder"] or "").strip() or None
    if "imagePublicIds" in fields:
        changes["image_public_ids"] = fields["imagePublicIds"] or []
    if fields.get("dateIsMonthOnly") is not None:
        changes["date_is_month_only"] = fields["dateIsMonthOnly"]
    if fields.get("createdAt") is not None:
        changes["created_at"] = fields["createdAt"]

    updated = db.update_project(project_id, changes) if changes else project
    if updated is None:
        raise NotFound("Project not found")
    logger.info("Updated project %s (%s)", project_id, ", ".join(sorted(changes)) or "no changes")
    return _project_response(updated)


@router.delete("/projects/{project_id}", response_model=OkResponse)
def delete_project(
    project_id: str,
    _admin: Identity = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
    host: AssetHost = Depends(get_asset_host),
):
    project = db.get_project(project_id)
    if project is None:
        raise NotFound("Project not found")
    db.delete_project(project_id)
    if project.cloudinary_folder:
        try:
            host.delete_folder(project.cloudinary_folder)
        except AssetHostError as exc:
            # The periodic cleanup picks the folder up later.
            logger.warning(
                "Could not delete folder %s of project %s: %s",
                project.cloudinary_folder,
                project_id,
                exc,
            )
    logger.info("Deleted project %s", project_id)
    return OkResponse()


@router.post("/contact", response_model=OkResponse)
def submit_contact(
    payload: ContactRequest,
    client: Web3FormsClient = Depends(get_contact_client),
):
    name = payload.name.strip()
    email = payload.email.strip()
    message = payload.message.strip()
    if not name or not email or not message:
        raise ValidationError("Name, email and message are required")
    if "@" not in email:
        raise ValidationError("Invalid email address")
    client.submit(name, email, message, subject=payload.subject)
    return OkResponse()


@router.get("/auth/google/login")
def google_login(google: GoogleOAuthClient = Depends(get_google_client)):
    state = secrets.token_urlsafe(16)
    response = RedirectResponse(google.authorization_url(state), status_code=302)
    response.set_cookie(
        OAUTH_STATE_COOKIE,
        state,
        max_age=600,
        httponly=True,
        samesite="lax",
        secure=get_settings().secure_cookies,
    )
    return response


@router.get("/auth/google/callback")
def google_callback(
    request: Request,
    code: str | None = Query(None),
    state: str | None = Query(None),
    error: str | None = Query(None),
    google: GoogleOAuthClient = Depends(get_google_client),
    signin: SignInService = Depends(get_signin_service),
):
    if error or not code:
        return RedirectResponse(
            f"{SIGNIN_ERROR_PATH}?error={quote(error or 'MissingCode')}",
            status_code=302,
        )
    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if not state or not expected_state or not secrets.compare_digest(
        state, expected_state
    ):
        raise ValidationError("Invalid OAuth state")

    try:
        user = google.fetch_user(code)
        session = signin.sign_in(user.email, name=user.name)
    except Forbidden:
        response = RedirectResponse(
            f"{SIGNIN_ERROR_PATH}?error=AccessDenied", status_code=302
        )
        response.delete_cookie(OAUTH_STATE_COOKIE)
        return response

    settings = get_settings()
    response = RedirectResponse("/", status_code=302)
    response.delete_cookie(OAUTH_STATE_COOKIE)
    response.set_cookie(
        settings.session_cookie_name,
        session.token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )
    return response


@router.post("/auth/signout", response_model=OkResponse)
def sign_out(
    request: Request,
    response: Response,
    signin: SignInService = Depends(get_signin_service),
):
    cookie_name = get_settings().session_cookie_name
    signin.sign_out(session_token_from_request(request, cookie_name))
    response.delete_cookie(cookie_name)
    return OkResponse()


@router.get("/auth/session", response_model=SessionResponse)
def get_session(
    identity: Optional[Identity] = Depends(current_identity),
    db: DbClient = Depends(get_db_client),
):
    if identity is None:
        return SessionResponse(authenticated=False)
    return SessionResponse(
        authenticated=True, email=identity.email, isAdmin=is_admin(identity, db)
    )
