import logging
import re
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio_crm.core import config
from studio_crm.models.chat import ChatMessage, ChatSession
from studio_crm.models.client import Client
from studio_crm.notifications import n8n
from studio_crm.routes.dependencies import database_unavailable, ensure_database_ready, get_db

router = APIRouter(tags=['chat'])

logger = logging.getLogger(__name__)

SESSION_PENDING_AGENT = 'pending_agent'
SESSION_AGENT_ACTIVE = 'agent_active'
SESSION_RESOLVED = 'resolved'


class IncomingMessageRequest(BaseModel):
    sender: str | None = Field(default=None, alias='from')
    text: str | None = None
    timestamp: datetime | None = None
    profile_name: str | None = Field(default=None, alias='profileName')
    message_id: str | None = Field(default=None, alias='messageId')

    class Config:
        populate_by_name = True


class IncomingMessageResponse(BaseModel):
    ok: bool
    status: str


class OutgoingMessageRequest(BaseModel):
    client_phone: str | None = None
    content: str | None = None

    class Config:
        extra = 'allow'


class OutgoingMessageResponse(BaseModel):
    received: bool
    status: str
    echo: dict


class ResolveChatRequest(BaseModel):
    phone_id: str


class ResolveChatResponse(BaseModel):
    success: bool
    resolved_count: int


class ChatSessionResponse(BaseModel):
    id: int
    client_id: int | None = None
    client_phone: str
    last_message: str | None = None
    last_activity: datetime | None = None
    status: str | None = None
    unread_count: int = 0
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class ChatMessageResponse(BaseModel):
    id: int
    client_phone: str
    content: str | None = None
    from_client: bool
    message_id: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


def normalize_whatsapp_phone(phone: str | None) -> str:
    """Drop the ``whatsapp:`` prefix and anything but digits and ``+``."""
    return re.sub(r'[^\d+]', '', re.sub(r'^whatsapp:', '', phone or ''))


def find_or_create_chat_client(db: Session, phone: str, profile_name: str | None, received_at: datetime) -> Client:
    client = db.query(Client).filter(Client.phone == phone).first()
    if client is not None:
        return client

    digits = n8n.digits_only(phone)
    client = Client(
        name=profile_name or f'Cliente {phone}',
        phone=phone,
        phone_number=digits[-10:],
        country_code=config.DEFAULT_COUNTRY_CODE,
        client_type='WhatsApp',
        status='activo',
        created_from='WHATSAPP',
        created_at=received_at,
    )
    db.add(client)
    db.flush()
    return client


@router.post('/whatsapp/incoming', response_model=IncomingMessageResponse)
def receive_whatsapp_message(data: IncomingMessageRequest, db: Session = Depends(get_db)):
    client_phone = normalize_whatsapp_phone(data.sender)
    content = (data.text or '').strip()

    if not client_phone or not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Incomplete data (from/text).',
        )

    ensure_database_ready()

    received_at = data.timestamp or datetime.now()
    logger.info('Incoming WhatsApp message from %s', client_phone)

    try:
        client = find_or_create_chat_client(db, client_phone, data.profile_name, received_at)
        session = db.query(ChatSession).filter(ChatSession.client_phone == client_phone).first()

        if session is not None:
            new_status = SESSION_AGENT_ACTIVE if session.status == SESSION_AGENT_ACTIVE else SESSION_PENDING_AGENT

            db.query(ChatSession).filter(ChatSession.client_phone == client_phone).update(
                {ChatSession.unread_count: func.coalesce(ChatSession.unread_count, 0) + 1},
                synchronize_session=False,
            )
            session.last_message = content
            session.last_activity = received_at
            session.status = new_status
            session.updated_at = datetime.now()
        else:
            new_status = SESSION_PENDING_AGENT
            db.add(ChatSession(
                client_id=client.id,
                client_phone=client_phone,
                last_message=content,
                last_activity=received_at,
                status=new_status,
                unread_count=1,
            ))

        db.add(ChatMessage(
            client_phone=client_phone,
            content=content,
            from_client=True,
            message_id=data.message_id,
            created_at=received_at,
        ))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to store incoming WhatsApp message from %s', client_phone)
        raise database_unavailable() from exc

    return IncomingMessageResponse(ok=True, status=new_status)


@router.post('/whatsapp/outgoing', response_model=OutgoingMessageResponse)
def send_whatsapp_message(data: OutgoingMessageRequest):
    if not data.client_phone or not data.content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Incomplete data for delivery.',
        )

    payload = data.model_dump()
    delivery_status = n8n.forward_outgoing_message(payload)
    if delivery_status != n8n.STATUS_SENT:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f'Message delivery flow failed ({delivery_status}).',
        )

    return OutgoingMessageResponse(received=True, status='SENT_TO_N8N_FOR_DELIVERY', echo=payload)


@router.post('/chat/resolve', response_model=ResolveChatResponse)
def resolve_chat(data: ResolveChatRequest, db: Session = Depends(get_db)):
    digits = n8n.digits_only(data.phone_id)
    if not digits:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='phone_id is required.',
        )

    ensure_database_ready()

    try:
        resolved_count = db.query(ChatSession).filter(
            ChatSession.client_phone.in_([digits, f'+{digits}'])
        ).update(
            {ChatSession.status: SESSION_RESOLVED, ChatSession.updated_at: datetime.now()},
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return ResolveChatResponse(success=True, resolved_count=resolved_count)


@router.get('/chat/sessions', response_model=list[ChatSessionResponse])
def list_chat_sessions(
    status_filter: str | None = Query(default=None, alias='status'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(ChatSession)
        if status_filter:
            query = query.filter(ChatSession.status == status_filter)
        return query.order_by(ChatSession.updated_at.desc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/chat/sessions/{phone}/messages', response_model=list[ChatMessageResponse])
def list_chat_messages(phone: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    client_phone = normalize_whatsapp_phone(phone)
    try:
        return db.query(ChatMessage).filter(
            ChatMessage.client_phone == client_phone,
        ).order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
