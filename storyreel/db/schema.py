"""
Database schema definitions using SQLAlchemy.

This module defines the tables for story simulations, holograms, runs,
turns and highlight videos. All data is stored in a single SQLite database
file for easy backup and portability.
"""

# mypy: ignore-errors

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()  # type: ignore


def _new_id() -> str:
    return str(uuid.uuid4())


class Simulation(Base):
    """
    Simulation table storing narrative definitions.

    Attributes:
        id: Unique simulation identifier (UUID)
        status: Simulation status
        simulation_object: JSON object; story simulations carry
            ``{"type": "story", "story": {...}}``
        created_at: Timestamp when the simulation was created
        updated_at: Timestamp when the simulation was last modified
    """

    __tablename__ = "simulations"

    id = Column(String, primary_key=True, default=_new_id)
    status = Column(String, nullable=False, default="active")
    simulation_object = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class Hologram(Base):
    """
    Hologram table storing characters that can be played in a simulation.

    Attributes:
        id: Unique hologram identifier (UUID)
        simulation_id: Simulation the hologram belongs to
        name: Character name
        acting_instructions: Behavioral guidelines as a JSON list
        descriptions: Appearance and personality as a JSON list
        wardrobe: Clothing and accessories as a JSON list
    """

    __tablename__ = "holograms"

    id = Column(String, primary_key=True, default=_new_id)
    simulation_id = Column(
        String, ForeignKey("simulations.id"), nullable=False, index=True
    )
    name = Column(String, nullable=False)
    acting_instructions = Column(JSON, nullable=False, default=list)
    descriptions = Column(JSON, nullable=False, default=list)
    wardrobe = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class Run(Base):
    """
    Run table storing playthroughs.

    Attributes:
        id: Unique run identifier (UUID)
        simulation_id: Story simulation being played
        hologram_id: Hologram the user plays as
        status: active, completed or abandoned
        current_turn: turn_number of the latest turn (-1 before the opening turn)
        title: Optional user-editable title
    """

    __tablename__ = "runs"

    id = Column(String, primary_key=True, default=_new_id)
    simulation_id = Column(
        String, ForeignKey("simulations.id"), nullable=False, index=True
    )
    hologram_id = Column(String, nullable=False)
    status = Column(String, nullable=False, default="active")
    current_turn = Column(Integer, nullable=False, default=-1)
    title = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class Turn(Base):
    """
    Turn table storing the immutable history of a run.

    Attributes:
        id: Unique turn identifier (UUID)
        run_id: Owning run
        turn_number: Position within the run, unique per run
        user_prompt: The user's action
        ai_response: Narrative continuation
        image_url: Durable (or data:) URL of the turn illustration
        image_prompt: Exact prompt used for the illustration
        suggested_options: Four next actions as a JSON list
    """

    __tablename__ = "turns"
    __table_args__ = (
        UniqueConstraint("run_id", "turn_number", name="uq_turns_run_turn_number"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    run_id = Column(String, ForeignKey("runs.id"), nullable=False, index=True)
    turn_number = Column(Integer, nullable=False)
    user_prompt = Column(Text, nullable=False)
    ai_response = Column(Text, nullable=False)
    image_url = Column(Text, nullable=True)
    image_prompt = Column(Text, nullable=True)
    suggested_options = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class Video(Base):
    """
    Video table storing highlight-render jobs.

    At most one non-failed video exists per run (partial unique index).

    Attributes:
        id: Unique video identifier (UUID)
        run_id: Owning run
        status: generating, completed or failed
        generation_prompt: Compiled highlight prompt
        video_url: Durable URL, set only on completion
        operation_payload: Serialized render-job handle while generating
        completed_at: Set if and only if status is completed
    """

    __tablename__ = "videos"
    __table_args__ = (
        Index(
            "uq_videos_active_run",
            "run_id",
            unique=True,
            sqlite_where=text("status != 'failed'"),
            postgresql_where=text("status != 'failed'"),
        ),
    )

    id = Column(String, primary_key=True, default=_new_id)
    run_id = Column(String, ForeignKey("runs.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default="generating")
    generation_prompt = Column(Text, nullable=True)
    video_url = Column(Text, nullable=True)
    operation_payload = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
