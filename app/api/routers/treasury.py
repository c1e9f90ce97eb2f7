# app/api/routers/treasury.py - Bank accounts, transfers and currency exchanges
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.errors import http_error
from app.core.db import get_db
from app.schemas.accounting import BankAccountCreate, FxExchangeCreate, TransferCreate
from app.services.ledger import (
    create_account, fx_exchange, list_accounts, list_transactions, transaction_to_dict, transfer
)

router = APIRouter(prefix="/admin/accounting", tags=["Accounting - Treasury"])


@router.get("/bank-accounts")
def get_bank_accounts(
    currency: str | None = Query(None),
    admin_only: bool = Query(False, alias="adminOnly"),
    db: Session = Depends(get_db),
):
    return list_accounts(db, currency=currency, admin_only=admin_only)


@router.post("/bank-accounts", status_code=201)
def post_bank_account(payload: BankAccountCreate, db: Session = Depends(get_db)):
    try:
        account = create_account(
            db,
            user_id=payload.user_id,
            account_name=payload.account_name,
            currency=payload.currency,
            bank_name=payload.bank_name,
            is_admin_owned=payload.is_admin_owned,
        )
        db.commit()
    except ValueError as e:
        raise http_error(e)

    return {
        "account": {
            "id": account.id,
            "userId": account.user_id,
            "accountName": account.account_name,
            "bankName": account.bank_name,
            "currency": account.currency,
            "isAdminOwned": account.is_admin_owned,
            "balance": 0,
        },
        "message": "Bank account created",
    }


@router.get("/journal")
def get_journal(
    type: str | None = Query(None),
    currency: str | None = Query(None),
    account_id: str | None = Query(None, alias="accountId"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return list_transactions(
        db,
        type=type,
        currency=currency,
        account_id=account_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )


@router.get("/transfers")
def get_transfers(
    currency: str | None = Query(None),
    account_id: str | None = Query(None, alias="accountId"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return list_transactions(
        db, type="TRANSFER", currency=currency, account_id=account_id, limit=limit, offset=offset
    )


@router.post("/transfers", status_code=201)
def post_transfer(payload: TransferCreate, db: Session = Depends(get_db)):
    try:
        txn = transfer(
            db,
            from_account_id=payload.from_account_id,
            to_account_id=payload.to_account_id,
            amount=payload.amount,
            on=payload.date,
            description=payload.description,
            notes=payload.notes,
        )
        db.commit()
    except ValueError as e:
        raise http_error(e)

    return {"transaction": transaction_to_dict(txn), "message": "Transfer recorded"}


@router.post("/fx-exchange", status_code=201)
def post_fx_exchange(payload: FxExchangeCreate, db: Session = Depends(get_db)):
    try:
        out_txn, in_txn = fx_exchange(
            db,
            from_account_id=payload.from_account_id,
            from_amount=payload.from_amount,
            to_account_id=payload.to_account_id,
            to_amount=payload.to_amount,
            exchange_rate=payload.exchange_rate,
            on=payload.date,
            notes=payload.notes,
        )
        db.commit()
    except ValueError as e:
        raise http_error(e)

    return {
        "transactions": [transaction_to_dict(out_txn), transaction_to_dict(in_txn)],
        "message": "Exchange recorded",
    }
