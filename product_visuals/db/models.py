# product_visuals/db/models.py
from sqlalchemy import (
    func, ForeignKey, JSON, Column, DateTime, Integer, String, Text
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Product(Base):
    __tablename__ = "products"
    id = Column(String(64), primary_key=True)
    owner_id = Column(String(64), nullable=True, index=True)
    name = Column(String(255), nullable=False, default="")
    analyzed_attributes = Column(JSON, nullable=True)
    # User edits of the analysis; preferred over analyzed_attributes when set.
    final_attributes = Column(JSON, nullable=True)
    front_image_url = Column(Text, nullable=True)
    back_image_url = Column(Text, nullable=True)
    reference_images = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    jobs = relationship("GenerationJob", back_populates="product")


class Scene(Base):
    """Art-direction preset. Background, floor, props, styling, lighting live in `attributes`."""
    __tablename__ = "scenes"
    id = Column(String(64), primary_key=True)
    owner_id = Column(String(64), nullable=True, index=True)
    name = Column(String(255), nullable=False, default="")
    attributes = Column(JSON, nullable=False, default=dict)
    reference_image_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    jobs = relationship("GenerationJob", back_populates="scene")


class GenerationJob(Base):
    __tablename__ = "generation_jobs"
    id = Column(String(64), primary_key=True)
    request_id = Column(String(64), nullable=True, index=True)
    owner_id = Column(String(64), nullable=True, index=True)
    product_id = Column(String(64), ForeignKey("products.id"), nullable=False, index=True)
    scene_id = Column(String(64), ForeignKey("scenes.id"), nullable=False, index=True)
    shot_options = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, index=True, default="pending")
    shots = Column(JSON, nullable=False, default=list)
    results = Column(JSON, nullable=False, default=list)
    progress_percent = Column(Integer, nullable=False, default=0)
    completed_count = Column(Integer, nullable=False, default=0)
    total_count = Column(Integer, nullable=False, default=0)
    attempts = Column(Integer, nullable=False, default=0)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    product = relationship("Product", back_populates="jobs")
    scene = relationship("Scene", back_populates="jobs")
