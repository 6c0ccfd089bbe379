# models.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from db import Base

class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(320), unique=True, index=True, nullable=False)
    full_name = Column(String(256))
    password_hash = Column(String(256), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    sessions = relationship("AuthSession", back_populates="user", cascade="all, delete-orphan")
    articles = relationship("ArticleHistory", back_populates="user", cascade="all, delete-orphan")

class AuthSession(Base):
    __tablename__ = "auth_sessions"

    token = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("Profile", back_populates="sessions")

class ArticleHistory(Base):
    __tablename__ = "article_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String(512), nullable=False)
    original_text = Column(Text, nullable=False)
    summary = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("Profile", back_populates="articles")
    quiz_results = relationship(
        "QuizResult", back_populates="article", cascade="all, delete-orphan",
        order_by="QuizResult.id",
    )

class QuizResult(Base):
    __tablename__ = "quiz_results"

    id = Column(Integer, primary_key=True, index=True)
    article_history_id = Column(Integer, ForeignKey("article_history.id", ondelete="CASCADE"), index=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)
    score = Column(Integer, nullable=False)       # 0..100
    suggestion = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    article = relationship("ArticleHistory", back_populates="quiz_results")
