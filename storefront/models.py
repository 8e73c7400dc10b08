from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text

from storefront.database import Base


def _now():
    return datetime.now(timezone.utc)


class Profile(Base):
    __tablename__ = "club_profile"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, default="Nome do Modelo")
    bio = Column(Text, default="")
    banner_url = Column(String)
    avatar_url = Column(String)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=29.90)  # reais
    button_text = Column(String, default="Desbloquear Agora")
    button_color = Column(String, default="#e11d48")
    delivery_link = Column(String)                 # only revealed after a confirmed payment
    photos_count = Column(Integer, default=0)
    videos_count = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


class GalleryItem(Base):
    __tablename__ = "gallery_items"

    id = Column(Integer, primary_key=True)
    type = Column(String, nullable=False)          # photo | video
    url = Column(String, nullable=False)
    thumbnail_url = Column(String)
    is_preview = Column(Boolean, default=True)
    display_order = Column(Integer, default=0, index=True)
    created_at = Column(DateTime(timezone=True), default=_now)


class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    link = Column(String, nullable=False)
    banner_url = Column(String)
    members = Column(String)                       # display string, e.g. "5.2K"
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)


class UserRole(Base):
    __tablename__ = "user_roles"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    role = Column(String, nullable=False, default="user")   # admin | user


def load_profile(db):
    """Return the deployment's single profile row, creating it on first use."""
    profile = db.query(Profile).order_by(Profile.id).first()
    if profile is None:
        profile = Profile()
        db.add(profile)
        db.commit()
        db.refresh(profile)
    return profile


def ordered_gallery(db, previews_only=False):
    query = db.query(GalleryItem)
    if previews_only:
        query = query.filter(GalleryItem.is_preview.is_(True))
    return query.order_by(GalleryItem.display_order, GalleryItem.id).all()
