# backend/gardenbook/routers/quotes.py
"""
POST /quotes

Preview (finalize=false) returns the quote with unconfigured combinations
flagged and priced at 0. finalize=true refuses such a quote (422).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_config
from ..schemas.quotes import LineItemRead, QuoteRequest, QuoteResponse
from ..services.booking import BookingDraft, price_draft
from ..services.pricing import deposit_for
from ..services.slots import BookingConfig

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("", response_model=QuoteResponse)
def create_quote(
    data: QuoteRequest,
    db: Session = Depends(get_db),
    config: BookingConfig = Depends(get_config),
):
    draft = BookingDraft(
        tasks=tuple(t.to_task() for t in data.tasks),
        provider_id=data.provider_id,
        target_total=data.target_total,
    )
    quote = price_draft(db, draft, finalize=data.finalize)
    deposit, balance = deposit_for(quote.total, config.deposit_percent)

    return QuoteResponse(
        provider_id=data.provider_id,
        total=quote.total,
        line_items=[LineItemRead.model_validate(item) for item in quote.line_items],
        unconfigured=quote.unconfigured,
        is_final=quote.is_final,
        estimated_hours=draft.duration,
        deposit=deposit,
        balance=balance,
    )
