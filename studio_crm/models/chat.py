"""WhatsApp chat inbox model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from studio_crm.database import Base


class ChatSession(Base):
    """One conversation per client phone."""
    __tablename__ = "chat_sessions"

    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("clients.id"))
    client_phone = Column(String, unique=True, index=True)
    last_message = Column(String)
    last_activity = Column(DateTime)
    status = Column(String)  # pending_agent/agent_active/resolved
    unread_count = Column(Integer, default=0)
    updated_at = Column(DateTime, default=datetime.now)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True)
    client_phone = Column(String, index=True)
    content = Column(String)
    from_client = Column(Boolean, default=True)
    message_id = Column(String)
    created_at = Column(DateTime, default=datetime.now)
