"""API Routes for transactions, budgets and summaries"""
import logging
from datetime import datetime
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import ValidationError

from models.budget import MONTH_PATTERN, BudgetCreate, BudgetListResponse, BudgetResponse
from models.category import TransactionCategory
from models.reconciliation import ReconciliationResponse
from models.summary import CategoryTotal, MonthlyExpenses, TransactionSummary
from models.transaction import Transaction, TransactionCreate, TransactionUpdate
from services import budgets_service, summary_service, transactions_service
from services.exceptions import DuplicateBudgetError, RecordNotFoundError
from services.reconciliation import period_key
from utils.config import BUDGETS_COLLECTION, DISPLAY_TIMEZONE, TRANSACTIONS_COLLECTION

router = APIRouter()
logger = logging.getLogger(__name__)

DB_UNAVAILABLE = "Failed to connect to the database. Please make sure MongoDB is running."

# --- Dependency Functions ---

async def _get_collection(request: Request, name: str) -> AsyncIOMotorCollection:
    database = request.app.state.database
    try:
        return await database.get_collection(name)
    except ConnectionError as ce:
        logger.error(f"Collection '{name}' not available: {ce}")
        raise HTTPException(status_code=503, detail=DB_UNAVAILABLE)


async def get_transactions_collection(request: Request) -> AsyncIOMotorCollection:
    """Dependency to get the MongoDB transactions collection."""
    return await _get_collection(request, TRANSACTIONS_COLLECTION)


async def get_budgets_collection(request: Request) -> AsyncIOMotorCollection:
    """Dependency to get the MongoDB budgets collection."""
    return await _get_collection(request, BUDGETS_COLLECTION)


TransactionsCollectionDep = Annotated[AsyncIOMotorCollection, Depends(get_transactions_collection)]
BudgetsCollectionDep = Annotated[AsyncIOMotorCollection, Depends(get_budgets_collection)]

MonthQuery = Annotated[Optional[str], Query(pattern=MONTH_PATTERN, description="Month in YYYY-MM format.")]
CategoryQuery = Annotated[Optional[TransactionCategory], Query(description="Only this category.")]


def _http_error(exc: Exception, action: str) -> HTTPException:
    """Maps a service-layer exception to the HTTP error returned to the client."""
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, DuplicateBudgetError):
        return HTTPException(status_code=409, detail=str(exc))
    # pydantic errors here come from stored documents, not from the request
    if isinstance(exc, ValueError) and not isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, ConnectionError):
        logger.error(f"Connection error {action}: {exc}")
        return HTTPException(status_code=503, detail=DB_UNAVAILABLE)
    logger.exception(f"Unexpected error {action}: {exc}")
    return HTTPException(status_code=500, detail=f"An unexpected server error occurred while {action}.")


# --- Transactions ---

@router.get("/transactions", response_model=List[Transaction], summary="List Transactions", description="Retrieves transactions sorted by date descending, optionally for one month and/or category.")
async def list_transactions(
    collection: TransactionsCollectionDep,
    month: MonthQuery = None,
    category: CategoryQuery = None,
) -> List[Transaction]:
    logger.info(f"GET /transactions called. month={month} category={category}")
    try:
        return await transactions_service.list_transactions(collection, month=month, category=category, tz=DISPLAY_TIMEZONE)
    except Exception as e:
        raise _http_error(e, "fetching transactions")


@router.post("/transactions", response_model=Transaction, status_code=201, summary="Create Transaction")
async def create_transaction(collection: TransactionsCollectionDep, payload: TransactionCreate) -> Transaction:
    logger.info("POST /transactions called.")
    try:
        return await transactions_service.create_transaction(collection, payload, tz=DISPLAY_TIMEZONE)
    except Exception as e:
        raise _http_error(e, "creating the transaction")


@router.get("/transactions/{transaction_id}", response_model=Transaction, summary="Get Transaction")
async def get_transaction(collection: TransactionsCollectionDep, transaction_id: str) -> Transaction:
    logger.info(f"GET /transactions/{transaction_id} called.")
    try:
        return await transactions_service.get_transaction(collection, transaction_id)
    except Exception as e:
        raise _http_error(e, "fetching the transaction")


@router.put("/transactions/{transaction_id}", response_model=Transaction, summary="Update Transaction", description="Updates only the fields present in the body.")
async def update_transaction(collection: TransactionsCollectionDep, transaction_id: str, payload: TransactionUpdate) -> Transaction:
    logger.info(f"PUT /transactions/{transaction_id} called.")
    try:
        return await transactions_service.update_transaction(collection, transaction_id, payload, tz=DISPLAY_TIMEZONE)
    except Exception as e:
        raise _http_error(e, "updating the transaction")


@router.delete("/transactions/{transaction_id}", summary="Delete Transaction")
async def delete_transaction(collection: TransactionsCollectionDep, transaction_id: str):
    logger.info(f"DELETE /transactions/{transaction_id} called.")
    try:
        await transactions_service.delete_transaction(collection, transaction_id)
    except Exception as e:
        raise _http_error(e, "deleting the transaction")
    return {"message": "Transaction deleted successfully"}


# --- Budgets ---

@router.get("/budgets", response_model=BudgetListResponse, summary="List Budgets", description="Retrieves budgets ordered by category.")
async def list_budgets(
    collection: BudgetsCollectionDep,
    month: MonthQuery = None,
    category: CategoryQuery = None,
):
    logger.info(f"GET /budgets called. month={month} category={category}")
    try:
        budgets = await budgets_service.list_budgets(collection, month=month, category=category)
    except Exception as e:
        raise _http_error(e, "fetching budgets")
    return {"budgets": budgets}


@router.post("/budgets", response_model=BudgetResponse, status_code=201, summary="Create Budget", description="Fails with 409 if the category already has a budget for that month.")
async def create_budget(collection: BudgetsCollectionDep, payload: BudgetCreate):
    logger.info(f"POST /budgets called for {payload.category} in {payload.month}.")
    try:
        budget = await budgets_service.create_budget(collection, payload)
    except Exception as e:
        raise _http_error(e, "creating the budget")
    return {"budget": budget}


# Declared before /budgets/{budget_id} so "reconciliation" is not read as an ID
@router.get("/budgets/reconciliation", response_model=ReconciliationResponse, summary="Budget vs Actual", description="Compares each budget of the month with the month's expenses. Defaults to the current month.")
async def budget_reconciliation(
    budgets: BudgetsCollectionDep,
    transactions: TransactionsCollectionDep,
    month: MonthQuery = None,
):
    month = month or period_key(datetime.now(DISPLAY_TIMEZONE))
    logger.info(f"GET /budgets/reconciliation called for {month}.")
    try:
        reconciliations = await budgets_service.get_reconciliation(budgets, transactions, month, tz=DISPLAY_TIMEZONE)
    except Exception as e:
        raise _http_error(e, "reconciling budgets")
    return {"month": month, "reconciliations": reconciliations}


@router.get("/budgets/{budget_id}", response_model=BudgetResponse, summary="Get Budget")
async def get_budget(collection: BudgetsCollectionDep, budget_id: str):
    logger.info(f"GET /budgets/{budget_id} called.")
    try:
        budget = await budgets_service.get_budget(collection, budget_id)
    except Exception as e:
        raise _http_error(e, "fetching the budget")
    return {"budget": budget}


@router.put("/budgets/{budget_id}", response_model=BudgetResponse, summary="Update Budget", description="Replaces category, amount, month and notes. Fails with 409 on a duplicate category and month.")
async def update_budget(collection: BudgetsCollectionDep, budget_id: str, payload: BudgetCreate):
    logger.info(f"PUT /budgets/{budget_id} called.")
    try:
        budget = await budgets_service.update_budget(collection, budget_id, payload)
    except Exception as e:
        raise _http_error(e, "updating the budget")
    return {"budget": budget}


@router.delete("/budgets/{budget_id}", summary="Delete Budget")
async def delete_budget(collection: BudgetsCollectionDep, budget_id: str):
    logger.info(f"DELETE /budgets/{budget_id} called.")
    try:
        await budgets_service.delete_budget(collection, budget_id)
    except Exception as e:
        raise _http_error(e, "deleting the budget")
    return {"success": True, "message": "Budget deleted successfully"}


# --- Summaries ---

@router.get("/summary", response_model=TransactionSummary, summary="Dashboard Summary", description="Income, expense and balance totals over all transactions.")
async def get_summary(collection: TransactionsCollectionDep) -> TransactionSummary:
    logger.info("GET /summary called.")
    try:
        transactions = await transactions_service.list_transactions(collection, tz=DISPLAY_TIMEZONE)
    except Exception as e:
        raise _http_error(e, "building the summary")
    return summary_service.summarize_transactions(transactions)


@router.get("/summary/categories", response_model=List[CategoryTotal], summary="Totals by Category")
async def get_category_breakdown(
    collection: TransactionsCollectionDep,
    expenses_only: Annotated[bool, Query(alias="expensesOnly")] = True,
) -> List[CategoryTotal]:
    logger.info(f"GET /summary/categories called. expensesOnly={expenses_only}")
    try:
        transactions = await transactions_service.list_transactions(collection, tz=DISPLAY_TIMEZONE)
    except Exception as e:
        raise _http_error(e, "building the category breakdown")
    return summary_service.category_breakdown(transactions, expenses_only=expenses_only)


@router.get("/summary/monthly", response_model=List[MonthlyExpenses], summary="Monthly Expenses", description="Expense totals for the last N months, oldest first.")
async def get_monthly_expenses(
    collection: TransactionsCollectionDep,
    months: Annotated[int, Query(ge=1, le=summary_service.MAX_MONTHS)] = 6,
) -> List[MonthlyExpenses]:
    logger.info(f"GET /summary/monthly called. months={months}")
    try:
        transactions = await transactions_service.list_transactions(collection, expenses_only=True, tz=DISPLAY_TIMEZONE)
    except Exception as e:
        raise _http_error(e, "building monthly expenses")
    return summary_service.monthly_expenses(transactions, months=months, tz=DISPLAY_TIMEZONE)


@router.get("/health", summary="Service Health")
async def health(request: Request):
    database = request.app.state.database
    connected = await database.ping()
    return {
        "backend": "running",
        "database": "connected" if connected else "unavailable",
        "databaseName": database.name,
    }
