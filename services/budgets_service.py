"""Service layer for monthly budgets and budget-vs-actual reconciliation."""
import logging
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import ValidationError
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from models.budget import Budget, BudgetCreate
from models.reconciliation import BudgetReconciliation
from services import transactions_service
from services.exceptions import DuplicateBudgetError, RecordNotFoundError
from services.reconciliation import STATUS_OVER, build_reconciliation
from services.transactions_service import to_object_id

logger = logging.getLogger(__name__)

UNIQUE_INDEX_NAME = 'category_month_unique'
DUPLICATE_MESSAGE = 'A budget for this category and month already exists'


async def ensure_indexes(collection: AsyncIOMotorCollection) -> None:
    """Creates the unique (category, month) index. Safe to call repeatedly."""
    logger.info(f"Ensuring unique index '{UNIQUE_INDEX_NAME}' on collection '{collection.name}'.")
    await collection.create_index(
        [('category', ASCENDING), ('month', ASCENDING)],
        unique=True,
        name=UNIQUE_INDEX_NAME,
    )


def _document_to_budget(doc: Dict[str, Any]) -> Budget:
    doc = dict(doc)
    doc['id'] = str(doc.pop('_id'))
    return Budget.model_validate(doc)


async def _check_duplicate(collection: AsyncIOMotorCollection, category: str, month: str, exclude_id=None) -> None:
    # Only for a friendlier message; the unique index is what guarantees the invariant.
    query: Dict[str, Any] = {'category': category, 'month': month}
    if exclude_id is not None:
        query['_id'] = {'$ne': exclude_id}
    if await collection.find_one(query) is not None:
        logger.warning(f"Budget for {category} in {month} already exists.")
        raise DuplicateBudgetError(DUPLICATE_MESSAGE)


async def list_budgets(
    collection: AsyncIOMotorCollection,
    month: Optional[str] = None,
    category: Optional[str] = None,
) -> List[Budget]:
    """Fetches budgets ordered by category, optionally filtered by month and category."""
    query: Dict[str, Any] = {}
    if month:
        query['month'] = month
    if category:
        query['category'] = category

    logger.info(f"Fetching budgets from collection '{collection.name}' with filter {query}...")
    budgets = []
    try:
        async for doc in collection.find(query).sort('category', 1):
            try:
                budgets.append(_document_to_budget(doc))
            except ValidationError as e:
                logger.error(f"Data validation error for budget ID {doc.get('_id', 'N/A')}: {e}")
                continue
    except PyMongoError as e:
        logger.error(f"Database error fetching budgets: {e}")
        raise ConnectionError(f"Database error fetching budgets: {e}") from e
    logger.info(f"Fetched {len(budgets)} budgets successfully.")
    return budgets


async def get_budget(collection: AsyncIOMotorCollection, budget_id: str) -> Budget:
    object_id = to_object_id(budget_id, 'budget')
    try:
        doc = await collection.find_one({'_id': object_id})
    except PyMongoError as e:
        logger.error(f"Database error fetching budget {budget_id}: {e}")
        raise ConnectionError(f"Database error fetching budget: {e}") from e
    if doc is None:
        logger.warning(f"Budget {budget_id} not found.")
        raise RecordNotFoundError("Budget not found")
    return _document_to_budget(doc)


async def create_budget(collection: AsyncIOMotorCollection, payload: BudgetCreate) -> Budget:
    now = datetime.now(timezone.utc)
    doc = payload.model_dump()
    doc['created_at'] = now
    doc['updated_at'] = now

    logger.info(f"Creating budget for {payload.category} in {payload.month}: {payload.amount}")
    try:
        await _check_duplicate(collection, payload.category, payload.month)
        result = await collection.insert_one(doc)
    except DuplicateKeyError as e:
        logger.warning(f"Unique index rejected budget for {payload.category} in {payload.month}: {e}")
        raise DuplicateBudgetError(DUPLICATE_MESSAGE) from e
    except PyMongoError as e:
        logger.error(f"Database error creating budget: {e}")
        raise ConnectionError(f"Database error creating budget: {e}") from e
    doc['_id'] = result.inserted_id
    logger.info(f"Budget created with ID {result.inserted_id}.")
    return _document_to_budget(doc)


async def update_budget(collection: AsyncIOMotorCollection, budget_id: str, payload: BudgetCreate) -> Budget:
    object_id = to_object_id(budget_id, 'budget')
    changes = payload.model_dump()
    changes['updated_at'] = datetime.now(timezone.utc)

    logger.info(f"Updating budget {budget_id}: {payload.category} in {payload.month}")
    try:
        if await collection.find_one({'_id': object_id}) is None:
            logger.warning(f"Budget {budget_id} not found for update.")
            raise RecordNotFoundError("Budget not found")
        await _check_duplicate(collection, payload.category, payload.month, exclude_id=object_id)
        doc = await collection.find_one_and_update(
            {'_id': object_id},
            {'$set': changes},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError as e:
        logger.warning(f"Unique index rejected update of budget {budget_id}: {e}")
        raise DuplicateBudgetError(DUPLICATE_MESSAGE) from e
    except PyMongoError as e:
        logger.error(f"Database error updating budget {budget_id}: {e}")
        raise ConnectionError(f"Database error updating budget: {e}") from e
    if doc is None:
        logger.warning(f"Budget {budget_id} not found for update.")
        raise RecordNotFoundError("Budget not found")
    return _document_to_budget(doc)


async def delete_budget(collection: AsyncIOMotorCollection, budget_id: str) -> None:
    object_id = to_object_id(budget_id, 'budget')
    logger.info(f"Deleting budget {budget_id}")
    try:
        doc = await collection.find_one_and_delete({'_id': object_id})
    except PyMongoError as e:
        logger.error(f"Database error deleting budget {budget_id}: {e}")
        raise ConnectionError(f"Database error deleting budget: {e}") from e
    if doc is None:
        logger.warning(f"Budget {budget_id} not found for deletion.")
        raise RecordNotFoundError("Budget not found")


async def get_reconciliation(
    budgets_collection: AsyncIOMotorCollection,
    transactions_collection: AsyncIOMotorCollection,
    month: str,
    tz: Optional[tzinfo] = None,
) -> List[BudgetReconciliation]:
    """
    Compares each budget of ``month`` against the month's expense transactions.
    Results follow the budgets' category order.
    """
    budgets = await list_budgets(budgets_collection, month=month)
    transactions = await transactions_service.list_transactions(
        transactions_collection, month=month, expenses_only=True, tz=tz
    )
    reconciliations = build_reconciliation(transactions, budgets, month, tz)
    over = sum(1 for r in reconciliations if r.status == STATUS_OVER)
    logger.info(f"Reconciled {len(reconciliations)} budgets for {month}; {over} over budget.")
    return reconciliations
