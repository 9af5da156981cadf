from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from fitmate.models.base import Base
from fitmate.schemas.enums import Role


class ClassCategory(Base):
    """Named grouping of classes (yoga, boxing, ...)."""
    __tablename__ = "class_categories"

    name = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=True)

    # Relationships
    classes = relationship("FitnessClass", back_populates="category", passive_deletes=True)


class FitnessClass(Base):
    """A scheduled class session run by a trainer."""
    __tablename__ = "classes"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_classes_time_window"),
        CheckConstraint("capacity IS NULL OR capacity > 0", name="ck_classes_capacity_positive"),
    )

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    capacity = Column(Integer, nullable=True)  # NULL means unlimited
    required_role = Column(SQLEnum(Role, name="role"), nullable=True)
    trainer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    category_id = Column(Integer, ForeignKey("class_categories.id"), nullable=True, index=True)

    # Relationships
    trainer = relationship("User", back_populates="trained_classes", foreign_keys=[trainer_id])
    created_by = relationship("User", foreign_keys=[created_by_id])
    category = relationship("ClassCategory", back_populates="classes")
    enrollments = relationship("ClassEnrollment", back_populates="fitness_class", passive_deletes=True)


class ClassEnrollment(Base):
    """A user's seat in a class; at most one per (user, class)."""
    __tablename__ = "class_enrollments"
    __table_args__ = (
        UniqueConstraint("class_id", "user_id", name="uq_class_enrollments_class_user"),
    )

    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    fitness_class = relationship("FitnessClass", back_populates="enrollments")
    user = relationship("User", back_populates="enrollments")
