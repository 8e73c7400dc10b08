import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy import func

from storefront.auth import authenticate_user, create_access_token, is_admin, verify_token
from storefront.database import SessionLocal
from storefront.models import GalleryItem, Group, load_profile, ordered_gallery
from storefront.routes import format_brl, serialize_gallery_item, serialize_group
from storefront.storage import get_storage

logger = logging.getLogger(__name__)

router = APIRouter()
admin = APIRouter(prefix="/admin", dependencies=[Depends(verify_token)])

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"
EMAIL = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class LoginRequest(BaseModel):
    email: str = Field(pattern=EMAIL)
    password: str = Field(min_length=6, max_length=72)


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    bio: Optional[str] = None
    price: Optional[float] = Field(None, ge=1.0, allow_inf_nan=False)
    button_text: Optional[str] = Field(None, min_length=1)
    button_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    delivery_link: Optional[str] = None
    photos_count: Optional[int] = Field(None, ge=0)
    videos_count: Optional[int] = Field(None, ge=0)


class GalleryItemUpdate(BaseModel):
    is_preview: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)


class GroupIn(BaseModel):
    name: str = Field(min_length=1)
    link: str = Field(min_length=1)
    banner_url: Optional[str] = None
    members: Optional[str] = None


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    link: Optional[str] = Field(None, min_length=1)
    banner_url: Optional[str] = None
    members: Optional[str] = None


def serialize_profile(profile) -> dict:
    return {
        "id": profile.id,
        "name": profile.name,
        "bio": profile.bio,
        "banner_url": profile.banner_url,
        "avatar_url": profile.avatar_url,
        "price": profile.price,
        "price_label": format_brl(profile.price),
        "button_text": profile.button_text,
        "button_color": profile.button_color,
        "delivery_link": profile.delivery_link,
        "photos_count": profile.photos_count,
        "videos_count": profile.videos_count,
    }


@router.post("/auth/login")
def login(request: LoginRequest):
    db = SessionLocal()
    try:
        user = authenticate_user(db, request.email, request.password)
        if user is None or not is_admin(db, user.id):
            logger.warning("Failed admin login for %s", request.email)
            raise HTTPException(status_code=401, detail="Email ou senha incorretos")
        return {"access_token": create_access_token(user.id), "token_type": "bearer"}
    finally:
        db.close()


# --- profile ------------------------------------------------------------------

@admin.get("/profile")
def read_profile():
    db = SessionLocal()
    try:
        return serialize_profile(load_profile(db))
    finally:
        db.close()


@admin.put("/profile")
def update_profile(request: ProfileUpdate):
    db = SessionLocal()
    try:
        profile = load_profile(db)
        for field, value in request.model_dump(exclude_unset=True).items():
            setattr(profile, field, value)
        db.commit()
        db.refresh(profile)
        logger.info("Profile updated")
        return serialize_profile(profile)
    finally:
        db.close()


def _replace_profile_image(field: str, folder: str, file: UploadFile, storage):
    key = storage.put(folder, file.filename, file.file.read())
    url = storage.public_url(key)

    db = SessionLocal()
    try:
        profile = load_profile(db)
        setattr(profile, field, url)
        db.commit()
        db.refresh(profile)
        return serialize_profile(profile)
    finally:
        db.close()


@admin.post("/profile/banner")
def upload_banner(file: UploadFile = File(...), storage=Depends(get_storage)):
    return _replace_profile_image("banner_url", "banners", file, storage)


@admin.post("/profile/avatar")
def upload_avatar(file: UploadFile = File(...), storage=Depends(get_storage)):
    return _replace_profile_image("avatar_url", "avatars", file, storage)


# --- gallery ------------------------------------------------------------------

@admin.get("/gallery")
def list_gallery():
    db = SessionLocal()
    try:
        return [serialize_gallery_item(item) for item in ordered_gallery(db)]
    finally:
        db.close()


@admin.post("/gallery")
def upload_gallery(
    files: List[UploadFile] = File(...),
    media_type: Literal["photo", "video"] = Query(..., alias="type"),
    storage=Depends(get_storage),
):
    folder = "photos" if media_type == "photo" else "videos"
    db = SessionLocal()
    try:
        last = db.query(func.max(GalleryItem.display_order)).scalar()
        next_order = 0 if last is None else last + 1

        created = []
        for upload in files:
            key = storage.put(folder, upload.filename, upload.file.read())
            item = GalleryItem(
                type=media_type,
                url=storage.public_url(key),
                is_preview=True,
                display_order=next_order,
            )
            db.add(item)
            created.append(item)
            next_order += 1
        db.commit()

        logger.info("Added %d %s item(s) to the gallery", len(created), media_type)
        return [serialize_gallery_item(item) for item in created]
    finally:
        db.close()


@admin.patch("/gallery/{item_id}")
def update_gallery_item(item_id: int, request: GalleryItemUpdate):
    db = SessionLocal()
    try:
        item = db.get(GalleryItem, item_id)
        if item is None:
            raise HTTPException(status_code=404, detail="Gallery item not found")
        for field, value in request.model_dump(exclude_unset=True).items():
            setattr(item, field, value)
        db.commit()
        db.refresh(item)
        return serialize_gallery_item(item)
    finally:
        db.close()


@admin.delete("/gallery/{item_id}")
def delete_gallery_item(item_id: int):
    db = SessionLocal()
    try:
        item = db.get(GalleryItem, item_id)
        if item is None:
            raise HTTPException(status_code=404, detail="Gallery item not found")
        db.delete(item)
        db.commit()
        return {"deleted": item_id}
    finally:
        db.close()


# --- groups -------------------------------------------------------------------

@admin.get("/groups")
def admin_list_groups():
    db = SessionLocal()
    try:
        return [serialize_group(g) for g in db.query(Group).order_by(Group.id).all()]
    finally:
        db.close()


@admin.post("/groups")
def create_group(request: GroupIn):
    db = SessionLocal()
    try:
        group = Group(**request.model_dump())
        db.add(group)
        db.commit()
        db.refresh(group)
        return serialize_group(group)
    finally:
        db.close()


@admin.put("/groups/{group_id}")
def update_group(group_id: int, request: GroupUpdate):
    db = SessionLocal()
    try:
        group = db.get(Group, group_id)
        if group is None:
            raise HTTPException(status_code=404, detail="Group not found")
        for field, value in request.model_dump(exclude_unset=True).items():
            setattr(group, field, value)
        db.commit()
        db.refresh(group)
        return serialize_group(group)
    finally:
        db.close()


@admin.delete("/groups/{group_id}")
def delete_group(group_id: int):
    db = SessionLocal()
    try:
        group = db.get(Group, group_id)
        if group is None:
            raise HTTPException(status_code=404, detail="Group not found")
        db.delete(group)
        db.commit()
        return {"deleted": group_id}
    finally:
        db.close()


router.include_router(admin)
