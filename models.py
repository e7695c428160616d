# models.py
from sqlalchemy import Column, Integer, String, Text, Enum, ForeignKey, Boolean, JSON, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship
import enum

Base = declarative_base()

class ElectionState(enum.Enum):
    created = "Created"
    active = "Active"
    paused = "Paused"
    ended = "Ended"
    canceled = "Canceled"

class VotingType(enum.Enum):
    single_choice = "SingleChoice"
    multiple_choice = "MultipleChoice"

class Registry(Base):
    """Singleton row: who owns the registry and how many elections exist."""
    __tablename__ = "registry"
    id = Column(Integer, primary_key=True)
    owner = Column(String(255), nullable=False)
    election_count = Column(Integer, default=0, nullable=False)

class Election(Base):
    __tablename__ = "elections"
    id = Column(Integer, primary_key=True, autoincrement=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    admin = Column(String(255), nullable=False)
    start_time = Column(Integer, nullable=False)
    end_time = Column(Integer, nullable=False)
    state = Column(Enum(ElectionState), default=ElectionState.created, nullable=False)
    voting_type = Column(Enum(VotingType), nullable=False)
    max_votes_per_voter = Column(Integer, default=1, nullable=False)
    total_votes = Column(Integer, default=0, nullable=False)
    candidate_count = Column(Integer, default=0, nullable=False)
    requires_registration = Column(Boolean, default=False, nullable=False)
    results_visible = Column(Boolean, default=False, nullable=False)
    candidates = relationship("Candidate", back_populates="election",
                              order_by="Candidate.local_id", cascade="all, delete-orphan")
    voters = relationship("Voter", back_populates="election", cascade="all, delete-orphan")

class Candidate(Base):
    __tablename__ = "candidates"
    __table_args__ = (UniqueConstraint("election_id", "local_id"),)
    id = Column(Integer, primary_key=True)
    election_id = Column(Integer, ForeignKey("elections.id"), nullable=False)
    local_id = Column(Integer, nullable=False)  # 1..candidate_count within the election
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    vote_count = Column(Integer, default=0, nullable=False)
    election = relationship("Election", back_populates="candidates")

class Voter(Base):
    __tablename__ = "voters"
    __table_args__ = (UniqueConstraint("election_id", "identity"),)
    id = Column(Integer, primary_key=True)
    election_id = Column(Integer, ForeignKey("elections.id"), nullable=False)
    identity = Column(String(255), nullable=False)
    is_registered = Column(Boolean, default=False, nullable=False)
    has_voted = Column(Boolean, default=False, nullable=False)
    weight = Column(Integer, default=0, nullable=False)  # 0 means never registered
    choices = Column(JSON, default=list, nullable=False)  # candidate local ids, in ballot order
    election = relationship("Election", back_populates="voters")
