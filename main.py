import logging
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from config import get_settings
from database import SessionLocal, session_scope
from formatting import color_to_hex, format_currency
from insights import insight_icon, insight_style
from ledger import MonthlySummary, Summary
from models import Category, TransactionType, Wallet
from periods import resolve_period
from schemas import (
    BudgetIn,
    BudgetOut,
    CategoryIn,
    CategoryOut,
    InsightOut,
    InsightsResponse,
    MonthlySummaryOut,
    SummaryOut,
    SummaryResponse,
    TransactionIn,
    TransactionOut,
    TransactionsResponse,
    WalletIn,
    WalletOut,
)
from services import (
    BudgetService,
    CategoryService,
    DemoDataService,
    ExportService,
    InsightsService,
    RecordNotFound,
    SummaryService,
    TransactionFilters,
    TransactionService,
    WalletService,
    today_in_timezone,
)

logging.basicConfig(level=get_settings().log_level)

app = FastAPI(title="Finance Tracker")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def raise_http(exc: ValueError) -> None:
    status = 404 if isinstance(exc, RecordNotFound) else 400
    raise HTTPException(status_code=status, detail=str(exc)) from exc


def filters_from_request(request: Request) -> TransactionFilters:
    params = request.query_params
    try:
        period = resolve_period(
            params.get("period"),
            params.get("start"),
            params.get("end"),
            today=today_in_timezone(),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    txn_type = None
    if params.get("type"):
        try:
            txn_type = TransactionType(params["type"])
        except ValueError:
            txn_type = None

    def int_param(name: str) -> Optional[int]:
        raw = params.get(name)
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    return TransactionFilters(
        type=txn_type,
        category_id=int_param("category"),
        wallet_id=int_param("wallet"),
        start=period.start if period.start != date.min else None,
        end=period.end if period.end != date.max else None,
    )


def wallet_out(wallet: Wallet) -> WalletOut:
    out = WalletOut.model_validate(wallet)
    out.balance_display = format_currency(wallet.balance_cents, wallet.currency)
    return out


def category_out(category: Category) -> CategoryOut:
    return CategoryOut(
        id=category.id,
        name=category.name,
        type=category.type,
        icon=category.icon,
        color=color_to_hex(category.color),
    )


def summary_out(summary: Summary) -> SummaryOut:
    return SummaryOut(
        total_income=summary.total_income,
        total_expense=summary.total_expense,
        balance=summary.balance,
        by_category=summary.by_category,
    )


def monthly_out(entry: MonthlySummary) -> MonthlySummaryOut:
    return MonthlySummaryOut(
        month=entry.month,
        income=entry.income,
        expense=entry.expense,
        balance=entry.balance,
    )


@app.get("/api/wallets", response_model=list[WalletOut])
def list_wallets(db: Session = Depends(get_db)):
    return [wallet_out(w) for w in WalletService(db).list_all()]


@app.post("/api/wallets", response_model=WalletOut, status_code=201)
def create_wallet(payload: WalletIn, db: Session = Depends(get_db)):
    return wallet_out(WalletService(db).create(payload))


@app.put("/api/wallets/{wallet_id}", response_model=WalletOut)
def update_wallet(wallet_id: int, payload: WalletIn, db: Session = Depends(get_db)):
    try:
        return wallet_out(WalletService(db).update(wallet_id, payload))
    except ValueError as exc:
        raise_http(exc)


@app.delete("/api/wallets/{wallet_id}", status_code=204)
def delete_wallet(wallet_id: int, db: Session = Depends(get_db)):
    try:
        WalletService(db).delete(wallet_id)
    except ValueError as exc:
        raise_http(exc)
    return Response(status_code=204)


@app.get("/api/categories", response_model=list[CategoryOut])
def list_categories(request: Request, db: Session = Depends(get_db)):
    category_type = None
    type_param = request.query_params.get("type")
    if type_param:
        try:
            category_type = TransactionType(type_param)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid category type") from exc
    return [category_out(c) for c in CategoryService(db).list_all(category_type)]


@app.post("/api/categories", response_model=CategoryOut, status_code=201)
def create_category(payload: CategoryIn, db: Session = Depends(get_db)):
    try:
        return category_out(CategoryService(db).create(payload))
    except ValueError as exc:
        raise_http(exc)


@app.put("/api/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int, payload: CategoryIn, db: Session = Depends(get_db)
):
    try:
        return category_out(CategoryService(db).update(category_id, payload))
    except ValueError as exc:
        raise_http(exc)


@app.delete("/api/categories/{category_id}", status_code=204)
def delete_category(category_id: int, db: Session = Depends(get_db)):
    try:
        CategoryService(db).delete(category_id)
    except ValueError as exc:
        raise_http(exc)
    return Response(status_code=204)


@app.get("/api/transactions", response_model=TransactionsResponse)
def list_transactions(request: Request, db: Session = Depends(get_db)):
    filters = filters_from_request(request)
    txn_service = TransactionService(db)
    transactions = txn_service.list(filters)
    summary, _ = SummaryService(db).summary(filters)
    return TransactionsResponse(
        transactions=[TransactionOut.model_validate(t) for t in transactions],
        summary=summary_out(summary),
    )


@app.post("/api/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(payload: TransactionIn, db: Session = Depends(get_db)):
    try:
        return TransactionOut.model_validate(TransactionService(db).create(payload))
    except ValueError as exc:
        raise_http(exc)


@app.get("/api/transactions/{transaction_id}", response_model=TransactionOut)
def get_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        return TransactionOut.model_validate(TransactionService(db).get(transaction_id))
    except ValueError as exc:
        raise_http(exc)


@app.put("/api/transactions/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: int, payload: TransactionIn, db: Session = Depends(get_db)
):
    try:
        txn = TransactionService(db).update(transaction_id, payload)
    except ValueError as exc:
        raise_http(exc)
    return TransactionOut.model_validate(txn)


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        TransactionService(db).delete(transaction_id)
    except ValueError as exc:
        raise_http(exc)
    return Response(status_code=204)


@app.get("/api/budgets", response_model=list[BudgetOut])
def list_budgets(db: Session = Depends(get_db)):
    return [BudgetOut.model_validate(b) for b in BudgetService(db).list_all()]


@app.put("/api/budgets", response_model=BudgetOut)
def upsert_budget(payload: BudgetIn, db: Session = Depends(get_db)):
    try:
        return BudgetOut.model_validate(BudgetService(db).upsert(payload))
    except ValueError as exc:
        raise_http(exc)


@app.delete("/api/budgets/{category_id}", status_code=204)
def delete_budget(category_id: int, db: Session = Depends(get_db)):
    try:
        BudgetService(db).delete(category_id)
    except ValueError as exc:
        raise_http(exc)
    return Response(status_code=204)


@app.get("/api/summary", response_model=SummaryResponse)
def api_summary(request: Request, db: Session = Depends(get_db)):
    filters = filters_from_request(request)
    current, monthly = SummaryService(db).summary(filters)
    return SummaryResponse(
        current=summary_out(current),
        monthly=[monthly_out(m) for m in monthly],
    )


@app.get("/api/insights", response_model=InsightsResponse)
def api_insights(db: Session = Depends(get_db)):
    insights = InsightsService(db).insights()
    return InsightsResponse(
        insights=[
            InsightOut(
                type=i.type.value,
                message=i.message,
                metric=i.metric,
                severity=i.severity.value if i.severity else None,
                icon=insight_icon(i.type).value,
                style=insight_style(i.severity).value,
            )
            for i in insights
        ]
    )


@app.get("/api/export")
def api_export(request: Request, db: Session = Depends(get_db)):
    fmt = request.query_params.get("format", "csv")
    filters = filters_from_request(request)
    try:
        content, filename, media_type = ExportService(db).export(fmt, filters)
    except ValueError as exc:
        raise_http(exc)
    return StreamingResponse(
        iter([content]),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/api/demo/reset")
def api_demo_reset(db: Session = Depends(get_db)):
    count = DemoDataService(db).reset()
    logging.info(f"Demo data reset with {count} transactions")
    return {"transactions": count}


def seed_demo() -> None:
    with session_scope() as session:
        count = DemoDataService(session).reset()
    logging.info(f"Seeded {count} demo transactions")


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
