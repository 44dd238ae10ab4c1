"""
Pydantic schemas for the woodshop FastAPI backend.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class OkResponse(BaseModel):
    ok: Literal[True] = True


class CleanupResponse(BaseModel):
    ok: Literal[True] = True
    deleted: list[str]
    message: str


class DeleteAssetRequest(BaseModel):
    assetId: str = Field(..., max_length=512)


class SiteSettingUpdate(BaseModel):
    key: str = Field(..., max_length=128)
    value: Optional[str] = Field(default=None, max_length=20000)


class SiteSettingsResponse(BaseModel):
    settings: dict[str, Optional[str]]


class WhatWeDoCard(BaseModel):
    title: str
    description: str


class WhatWeDo(BaseModel):
    heading: str
    cards: list[WhatWeDoCard]


class AboutResponse(BaseModel):
    settings: dict[str, Optional[str]]
    whatWeDo: Optional[WhatWeDo] = None
    isAdmin: bool


class HomeResponse(BaseModel):
    settings: dict[str, Optional[str]]
    isAdmin: bool


# Latest instant a project date may carry: 9999-12-31T23:59:59Z.
MAX_PROJECT_TIMESTAMP = 253402300799


class ProjectCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=10000)
    tags: list[str] = Field(default_factory=list)
    cloudinaryFolder: Optional[str] = Field(default=None, max_length=512)
    imagePublicIds: list[str] = Field(default_factory=list)
    sortOrder: int = 0
    dateIsMonthOnly: bool = False
    createdAt: Optional[float] = Field(default=None, ge=0, le=MAX_PROJECT_TIMESTAMP)


class ProjectUpdateRequest(BaseModel):
    """Partial project edit; only the fields present in the body change."""

    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=10000)
    tags: Optional[list[str]] = None
    cloudinaryFolder: Optional[str] = Field(default=None, max_length=512)
    imagePublicIds: Optional[list[str]] = None
    dateIsMonthOnly: Optional[bool] = None
    createdAt: Optional[float] = Field(default=None, ge=0, le=MAX_PROJECT_TIMESTAMP)


class ProjectOrderRequest(BaseModel):
    projectIds: list[str] = Field(..., max_length=1000)


class ProjectResponse(BaseModel):
    id: str
    title: str
    description: str
    tags: list[str]
    cloudinaryFolder: Optional[str] = None
    imagePublicIds: list[str]
    sortOrder: int
    dateIsMonthOnly: bool
    createdAt: float
    displayDate: str


class ListProjectsResponse(BaseModel):
    projects: list[ProjectResponse]
    page: int
    hasMore: bool
    tags: list[str]


class ContactRequest(BaseModel):
    name: str = Field(..., max_length=200)
    email: str = Field(..., max_length=320)
    message: str = Field(..., max_length=5000)
    subject: Optional[str] = Field(default=None, max_length=200)


class SessionResponse(BaseModel):
    authenticated: bool
    email: Optional[str] = None
    isAdmin: bool = False
