"""
Manifestation Repository for Mente Merecedora

Owner-scoped storage for manifestation tools, discriminated by ``tipo``:
- quadro: vision board with images and affirmations
- checklist: ordered steps with completion flags
- simbolo: personal symbol (name, meaning, color, keywords, image)

Design Decisions:
1. Child rows (images, affirmations, steps) live in their own tables with
   delete-orphan cascades, ordered by ``position``
2. Keywords are one JSON list of strings; normalisation happens before
   anything reaches this layer
3. For symbols, name mirrors title and meaning mirrors description
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from loguru import logger
from sqlalchemy import (
    Column,
    String,
    Integer,
    Text,
    DateTime,
    Boolean,
    JSON,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.orm import relationship, selectinload

from .database import Database
from .models import Base


class ManifestationType(str, Enum):
    """Manifestation tool discriminator."""
    QUADRO = "quadro"
    CHECKLIST = "checklist"
    SIMBOLO = "simbolo"


class ManifestationModel(Base):
    """SQLAlchemy model for manifestation items."""

    __tablename__ = "manifestations"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    tipo = Column(String(20), nullable=False, index=True)

    title = Column(String(100), nullable=False)
    description = Column(String(500), default="")
    goal = Column(Text, default="")
    emotions = Column(JSON, default=list)
    manifestation_date = Column(DateTime)
    completed = Column(Boolean, default=False)

    # Symbol fields
    name = Column(String(100))
    meaning = Column(Text)
    color = Column(String(30))
    keywords = Column(JSON, default=list)
    symbol_path = Column(String(500))
    symbol_object_name = Column(String(500))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    images = relationship(
        "ManifestationImageModel",
        cascade="all, delete-orphan",
        order_by="ManifestationImageModel.position",
        passive_deletes=True,
    )
    affirmations = relationship(
        "AffirmationModel",
        cascade="all, delete-orphan",
        order_by="AffirmationModel.position",
        passive_deletes=True,
    )
    steps = relationship(
        "StepModel",
        cascade="all, delete-orphan",
        order_by="StepModel.position",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_manifestations_user_created", "user_id", "created_at"),
    )


class ManifestationImageModel(Base):
    __tablename__ = "manifestation_images"

    id = Column(String(36), primary_key=True)
    manifestation_id = Column(
        String(36), ForeignKey("manifestations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    path = Column(String(500), nullable=False)
    object_name = Column(String(500))
    description = Column(String(500), default="")
    position = Column(Integer, default=0)


class AffirmationModel(Base):
    __tablename__ = "manifestation_affirmations"

    id = Column(String(36), primary_key=True)
    manifestation_id = Column(
        String(36), ForeignKey("manifestations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text = Column(Text, nullable=False)
    highlighted = Column(Boolean, default=False)
    position = Column(Integer, default=0)


class StepModel(Base):
    __tablename__ = "manifestation_steps"

    id = Column(String(36), primary_key=True)
    manifestation_id = Column(
        String(36), ForeignKey("manifestations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description = Column(Text, nullable=False)
    completed = Column(Boolean, default=False)
    due_date = Column(DateTime)
    position = Column(Integer, default=0)


@dataclass
class StoredImage:
    id: str
    path: str
    object_name: Optional[str] = None
    description: str = ""


@dataclass
class StoredAffirmation:
    id: str
    text: str
    highlighted: bool = False


@dataclass
class StoredStep:
    id: str
    description: str
    completed: bool = False
    due_date: Optional[datetime] = None


@dataclass
class StoredManifestation:
    """Data class for manifestation transfer, children included."""

    id: str
    user_id: str
    tipo: str
    title: str
    description: str = ""
    goal: str = ""
    emotions: list[str] = field(default_factory=list)
    manifestation_date: Optional[datetime] = None
    completed: bool = False

    images: list[StoredImage] = field(default_factory=list)
    affirmations: list[StoredAffirmation] = field(default_factory=list)
    steps: list[StoredStep] = field(default_factory=list)

    name: Optional[str] = None
    meaning: Optional[str] = None
    color: Optional[str] = None
    keywords: list[str] = field(default_factory=list)
    symbol_path: Optional[str] = None
    symbol_object_name: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def object_names(self) -> list[str]:
        """Every stored media object this item references."""
        names = [img.object_name for img in self.images if img.object_name]
        if self.symbol_object_name:
            names.append(self.symbol_object_name)
        return names

    @classmethod
    def from_model(cls, model: ManifestationModel) -> "StoredManifestation":
        return cls(
            id=model.id,
            user_id=model.user_id,
            tipo=model.tipo,
            title=model.title,
            description=model.description or "",
            goal=model.goal or "",
            emotions=list(model.emotions or []),
            manifestation_date=model.manifestation_date,
            completed=bool(model.completed),
            images=[
                StoredImage(id=i.id, path=i.path, object_name=i.object_name, description=i.description or "")
                for i in model.images
            ],
            affirmations=[
                StoredAffirmation(id=a.id, text=a.text, highlighted=bool(a.highlighted))
                for a in model.affirmations
            ],
            steps=[
                StoredStep(id=s.id, description=s.description, completed=bool(s.completed), due_date=s.due_date)
                for s in model.steps
            ],
            name=model.name,
            meaning=model.meaning,
            color=model.color,
            keywords=list(model.keywords or []),
            symbol_path=model.symbol_path,
            symbol_object_name=model.symbol_object_name,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


# Scalar columns a caller may set through create/update
_SCALAR_FIELDS = {
    "title",
    "description",
    "goal",
    "emotions",
    "manifestation_date",
    "completed",
    "name",
    "meaning",
    "color",
    "keywords",
}


def _mirror_symbol_fields(model: ManifestationModel, supplied: set[str]) -> None:
    """Keep name<->title and meaning<->description aligned for symbols."""
    if model.tipo != ManifestationType.SIMBOLO.value:
        return

    if "name" in supplied and "title" not in supplied and model.name:
        model.title = model.name
    elif "title" in supplied and "name" not in supplied or not model.name:
        model.name = model.title

    if "meaning" in supplied and "description" not in supplied and model.meaning:
        model.description = model.meaning[:500]
    elif "description" in supplied and "meaning" not in supplied or not model.meaning:
        model.meaning = model.description


class ManifestationRepository:
    """Repository for manifestation items and their children."""

    def __init__(self, database: Database):
        self.db = database

    def _load(self, session, item_id: str) -> Optional[ManifestationModel]:
        return (
            session.query(ManifestationModel)
            .options(
                selectinload(ManifestationModel.images),
                selectinload(ManifestationModel.affirmations),
                selectinload(ManifestationModel.steps),
            )
            .filter(ManifestationModel.id == item_id)
            .first()
        )

    def _commit(self, session, model: ManifestationModel) -> StoredManifestation:
        model.updated_at = datetime.utcnow()
        session.commit()
        # Reload children in position order
        session.expire(model)
        return StoredManifestation.from_model(self._load(session, model.id))

    def create(
        self,
        user_id: str,
        tipo: str,
        title: str,
        affirmations: Optional[list[dict]] = None,
        steps: Optional[list[dict]] = None,
        **fields,
    ) -> StoredManifestation:
        """
        Create a manifestation item.

        Args:
            user_id: Owner
            tipo: quadro | checklist | simbolo
            title: Item title
            affirmations: [{text, highlighted}]
            steps: [{description, completed, due_date}]
            **fields: Other scalar fields
        """
        with self.db.get_session() as session:
            model = ManifestationModel(
                id=str(uuid.uuid4()),
                user_id=user_id,
                tipo=tipo,
                title=title,
                **{k: v for k, v in fields.items() if k in _SCALAR_FIELDS and v is not None},
            )
            _mirror_symbol_fields(model, set(fields) | {"title"})

            for position, affirmation in enumerate(affirmations or []):
                model.affirmations.append(
                    AffirmationModel(
                        id=str(uuid.uuid4()),
                        text=affirmation["text"],
                        highlighted=bool(affirmation.get("highlighted", False)),
                        position=position,
                    )
                )
            for position, step in enumerate(steps or []):
                model.steps.append(
                    StepModel(
                        id=str(uuid.uuid4()),
                        description=step["description"],
                        completed=bool(step.get("completed", False)),
                        due_date=step.get("due_date"),
                        position=position,
                    )
                )

            session.add(model)
            session.commit()

            logger.info(f"Manifestation created: {tipo} '{title}' for user {user_id}")
            return StoredManifestation.from_model(self._load(session, model.id))

    def get(self, item_id: str) -> Optional[StoredManifestation]:
        with self.db.get_session() as session:
            model = self._load(session, item_id)
            return StoredManifestation.from_model(model) if model else None

    def list_items(self, user_id: str, tipo: Optional[str] = None) -> list[StoredManifestation]:
        """A user's items, newest first."""
        with self.db.get_session() as session:
            query = (
                session.query(ManifestationModel)
                .options(
                    selectinload(ManifestationModel.images),
                    selectinload(ManifestationModel.affirmations),
                    selectinload(ManifestationModel.steps),
                )
                .filter(ManifestationModel.user_id == user_id)
            )
            if tipo:
                query = query.filter(ManifestationModel.tipo == tipo)

            items = query.order_by(ManifestationModel.created_at.desc()).all()
            return [StoredManifestation.from_model(m) for m in items]

    def update(
        self,
        item_id: str,
        affirmations: Optional[list[dict]] = None,
        steps: Optional[list[dict]] = None,
        **updates,
    ) -> Optional[StoredManifestation]:
        """
        Update scalar fields; a provided affirmations/steps list replaces the
        existing one.
        """
        with self.db.get_session() as session:
            model = self._load(session, item_id)
            if not model:
                return None

            supplied = set()
            for key, value in updates.items():
                if key in _SCALAR_FIELDS and value is not None:
                    setattr(model, key, value)
                    supplied.add(key)
            _mirror_symbol_fields(model, supplied)

            if affirmations is not None:
                model.affirmations = [
                    AffirmationModel(
                        id=str(uuid.uuid4()),
                        text=a["text"],
                        highlighted=bool(a.get("highlighted", False)),
                        position=position,
                    )
                    for position, a in enumerate(affirmations)
                ]
            if steps is not None:
                model.steps = [
                    StepModel(
                        id=str(uuid.uuid4()),
                        description=s["description"],
                        completed=bool(s.get("completed", False)),
                        due_date=s.get("due_date"),
                        position=position,
                    )
                    for position, s in enumerate(steps)
                ]

            return self._commit(session, model)

    def delete(self, item_id: str) -> Optional[StoredManifestation]:
        """Delete an item, returning its last state so media can be removed."""
        with self.db.get_session() as session:
            model = self._load(session, item_id)
            if not model:
                return None
            stored = StoredManifestation.from_model(model)
            session.delete(model)
            session.commit()
            logger.info(f"Manifestation deleted: {item_id}")
            return stored

    # -------------------------------------------------------------------------
    # Vision board images
    # -------------------------------------------------------------------------

    def add_image(
        self,
        item_id: str,
        path: str,
        object_name: str,
        description: str = "",
    ) -> Optional[StoredManifestation]:
        with self.db.get_session() as session:
            model = self._load(session, item_id)
            if not model:
                return None
            model.images.append(
                ManifestationImageModel(
                    id=str(uuid.uuid4()),
                    path=path,
                    object_name=object_name,
                    description=description or "",
                    position=len(model.images),
                )
            )
            return self._commit(session, model)

    def remove_image(
        self,
        item_id: str,
        image_id: str,
    ) -> Optional[tuple[StoredManifestation, Optional[str]]]:
        """
        Remove one image.

        Returns:
            (updated item, removed object name) or None if the image is unknown
        """
        with self.db.get_session() as session:
            model = self._load(session, item_id)
            if not model:
                return None
            image = next((i for i in model.images if i.id == image_id), None)
            if image is None:
                return None
            object_name = image.object_name
            model.images.remove(image)
            return self._commit(session, model), object_name

    # -------------------------------------------------------------------------
    # Affirmations
    # -------------------------------------------------------------------------

    def add_affirmation(
        self,
        item_id: str,
        text: str,
        highlighted: bool = False,
    ) -> Optional[StoredManifestation]:
        with self.db.get_session() as session:
            model = self._load(session, item_id)
            if not model:
                return None
            model.affirmations.append(
                AffirmationModel(
                    id=str(uuid.uuid4()),
                    text=text,
                    highlighted=highlighted,
                    position=len(model.affirmations),
                )
            )
            return self._commit(session, model)

    def remove_affirmation(self, item_id: str, affirmation_id: str) -> Optional[StoredManifestation]:
        with self.db.get_session() as session:
            model = self._load(session, item_id)
            if not model:
                return None
            affirmation = next((a for a in model.affirmations if a.id == affirmation_id), None)
            if affirmation is None:
                return None
            model.affirmations.remove(affirmation)
            return self._commit(session, model)

    # -------------------------------------------------------------------------
    # Checklist steps
    # -------------------------------------------------------------------------

    def add_step(
        self,
        item_id: str,
        description: str,
        due_date: Optional[datetime] = None,
    ) -> Optional[StoredManifestation]:
        with self.db.get_session() as session:
            model = self._load(session, item_id)
            if not model:
                return None
            model.steps.append(
                StepModel(
                    id=str(uuid.uuid4()),
                    description=description,
                    completed=False,
                    due_date=due_date,
                    position=len(model.steps),
                )
            )
            return self._commit(session, model)

    def update_step(self, item_id: str, step_id: str, **updates) -> Optional[StoredManifestation]:
        """Update description / completed / due_date of one step."""
        with self.db.get_session() as session:
            model = self._load(session, item_id)
            if not model:
                return None
            step = next((s for s in model.steps if s.id == step_id), None)
            if step is None:
                return None

            for key in ("description", "completed", "due_date"):
                if updates.get(key) is not None:
                    setattr(step, key, updates[key])

            return self._commit(session, model)

    def remove_step(self, item_id: str, step_id: str) -> Optional[StoredManifestation]:
        with self.db.get_session() as session:
            model = self._load(session, item_id)
            if not model:
                return None
            step = next((s for s in model.steps if s.id == step_id), None)
            if step is None:
                return None
            model.steps.remove(step)
            for position, remaining in enumerate(model.steps):
                remaining.position = position
            return self._commit(session, model)

    # -------------------------------------------------------------------------
    # Symbol image
    # -------------------------------------------------------------------------

    def set_symbol_image(
        self,
        item_id: str,
        path: str,
        object_name: str,
    ) -> Optional[tuple[StoredManifestation, Optional[str]]]:
        """
        Replace the symbol image.

        Returns:
            (updated item, previous object name)
        """
        with self.db.get_session() as session:
            model = self._load(session, item_id)
            if not model:
                return None
            previous = model.symbol_object_name
            model.symbol_path = path
            model.symbol_object_name = object_name
            return self._commit(session, model), previous

    # -------------------------------------------------------------------------
    # Stats
    # -------------------------------------------------------------------------

    def count(self, user_id: Optional[str] = None) -> int:
        with self.db.get_session() as session:
            query = session.query(func.count(ManifestationModel.id))
            if user_id:
                query = query.filter(ManifestationModel.user_id == user_id)
            return query.scalar() or 0

    def first_created(self, user_id: str, n: int = 1) -> list[datetime]:
        with self.db.get_session() as session:
            rows = (
                session.query(ManifestationModel.created_at)
                .filter(ManifestationModel.user_id == user_id)
                .order_by(ManifestationModel.created_at.asc())
                .limit(n)
                .all()
            )
            return [row[0] for row in rows]

    def recent_all(self, limit: int = 10) -> list[StoredManifestation]:
        with self.db.get_session() as session:
            items = (
                session.query(ManifestationModel)
                .order_by(ManifestationModel.created_at.desc())
                .limit(limit)
                .all()
            )
            return [StoredManifestation.from_model(m) for m in items]
