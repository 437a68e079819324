import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio_crm.models.client import Client
from studio_crm.models.service import Service
from studio_crm.models.specialist import Specialist
from studio_crm.notifications.n8n import digits_only
from studio_crm.routes.dependencies import get_db

router = APIRouter(tags=['autocomplete'])

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
MAX_SUGGESTIONS = 10


class ClientSuggestionResponse(BaseModel):
    name: str | None = None
    phone: str | None = None
    phone_number: str | None = None
    country_code: str | None = None

    class Config:
        from_attributes = True


class NamedSuggestionResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


@router.get('/clients', response_model=list[ClientSuggestionResponse])
def autocomplete_clients(q: str = Query(default=''), db: Session = Depends(get_db)):
    term = q.strip()
    if len(term) < MIN_QUERY_LENGTH:
        return []

    digits = digits_only(term)
    try:
        query = db.query(Client)
        if len(digits) >= MIN_QUERY_LENGTH:
            query = query.filter(Client.phone_number.ilike(f'%{digits}%'))
        else:
            query = query.filter(Client.name.ilike(f'%{term}%'))
        return query.order_by(Client.name.asc()).limit(MAX_SUGGESTIONS).all()
    except SQLAlchemyError:
        logger.exception('Error fetching client suggestions.')
        return []


@router.get('/services', response_model=list[NamedSuggestionResponse])
def autocomplete_services(q: str = Query(default=''), db: Session = Depends(get_db)):
    term = q.strip()
    if len(term) < MIN_QUERY_LENGTH:
        return []

    try:
        return db.query(Service).filter(
            Service.name.ilike(f'%{term}%'),
        ).order_by(Service.name.asc()).limit(MAX_SUGGESTIONS).all()
    except SQLAlchemyError:
        logger.exception('Error fetching service suggestions.')
        return []


@router.get('/specialists', response_model=list[NamedSuggestionResponse])
def autocomplete_specialists(q: str = Query(default=''), db: Session = Depends(get_db)):
    term = q.strip()
    if len(term) < MIN_QUERY_LENGTH:
        return []

    try:
        return db.query(Specialist).filter(
            Specialist.name.ilike(f'%{term}%'),
        ).order_by(Specialist.name.asc()).limit(MAX_SUGGESTIONS).all()
    except SQLAlchemyError:
        logger.exception('Error fetching specialist suggestions.')
        return []
