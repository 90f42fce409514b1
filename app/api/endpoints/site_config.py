"""
Site header configuration endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth import AuthContext, require_admin_privilege
from app.core.database import get_db
from app.schemas.site_config import HeaderConfig, HeaderConfigResponse
from app.services.site_config_service import SiteConfigService

router = APIRouter()


@router.get("/header", response_model=HeaderConfigResponse)
async def get_header_config(db: Session = Depends(get_db)):
    return HeaderConfigResponse(config=HeaderConfig(**SiteConfigService(db).get_header()))


@router.post("/header", response_model=HeaderConfigResponse)
async def save_header_config(
    body: HeaderConfig,
    _auth: AuthContext = Depends(require_admin_privilege),
    db: Session = Depends(get_db),
):
    config = SiteConfigService(db).save_header(
        avatar=body.avatar,
        title=body.title,
        avatar_image=body.avatarImage,
        contact_image=body.contactImage,
        cooperation_image=body.cooperationImage,
        category_subtitles=body.categorySubtitles,
    )
    return HeaderConfigResponse(message="Header config saved", config=HeaderConfig(**config))
