"""Service layer for handling transaction storage."""
import logging
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import ValidationError
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from models.transaction import Transaction, TransactionCreate, TransactionUpdate
from services.exceptions import RecordNotFoundError
from services.reconciliation import period_bounds

logger = logging.getLogger(__name__)


def to_object_id(value: str, entity: str) -> ObjectId:
    """Parse a path identifier, raising ValueError for malformed ones."""
    if not ObjectId.is_valid(value):
        raise ValueError(f"Invalid {entity} ID format")
    return ObjectId(value)


def _document_to_transaction(doc: Dict[str, Any]) -> Transaction:
    doc = dict(doc)
    doc['id'] = str(doc.pop('_id'))
    return Transaction.model_validate(doc)


def _localize(value: datetime, tz: Optional[tzinfo]) -> datetime:
    # Dates sent without an offset are taken to be in the display timezone
    if value.tzinfo is None:
        return value.replace(tzinfo=tz or timezone.utc)
    return value


async def list_transactions(
    collection: AsyncIOMotorCollection,
    month: Optional[str] = None,
    category: Optional[str] = None,
    expenses_only: bool = False,
    tz: Optional[tzinfo] = None,
) -> List[Transaction]:
    """Fetches transactions, newest first, optionally limited to one month and/or category."""
    query: Dict[str, Any] = {}
    if month:
        start, end = period_bounds(month, tz or timezone.utc)
        query['date'] = {'$gte': start, '$lt': end}
    if category:
        query['category'] = category
    if expenses_only:
        query['is_expense'] = True

    logger.info(f"Fetching transactions from collection '{collection.name}' with filter {query}...")
    transactions = []
    try:
        cursor = collection.find(query).sort('date', -1)
        async for doc in cursor:
            try:
                transactions.append(_document_to_transaction(doc))
            except ValidationError as e:
                logger.error(f"Data validation error for document ID {doc.get('_id', 'N/A')}: {e}")
                # Skip invalid documents
                continue
    except PyMongoError as e:
        logger.error(f"Database error fetching transactions: {e}")
        raise ConnectionError(f"Database error fetching transactions: {e}") from e
    logger.info(f"Fetched {len(transactions)} transactions successfully.")
    return transactions


async def get_transaction(collection: AsyncIOMotorCollection, transaction_id: str) -> Transaction:
    object_id = to_object_id(transaction_id, 'transaction')
    try:
        doc = await collection.find_one({'_id': object_id})
    except PyMongoError as e:
        logger.error(f"Database error fetching transaction {transaction_id}: {e}")
        raise ConnectionError(f"Database error fetching transaction: {e}") from e
    if doc is None:
        logger.warning(f"Transaction {transaction_id} not found.")
        raise RecordNotFoundError("Transaction not found")
    return _document_to_transaction(doc)


async def create_transaction(
    collection: AsyncIOMotorCollection,
    payload: TransactionCreate,
    tz: Optional[tzinfo] = None,
) -> Transaction:
    now = datetime.now(timezone.utc)
    doc = payload.model_dump()
    doc['date'] = _localize(doc['date'], tz)
    doc['created_at'] = now
    doc['updated_at'] = now

    logger.info(f"Creating transaction: {payload.description[:50]} ({payload.amount}, {payload.category})")
    try:
        result = await collection.insert_one(doc)
    except PyMongoError as e:
        logger.error(f"Database error creating transaction: {e}")
        raise ConnectionError(f"Database error creating transaction: {e}") from e
    doc['_id'] = result.inserted_id
    logger.info(f"Transaction created with ID {result.inserted_id}.")
    return _document_to_transaction(doc)


async def update_transaction(
    collection: AsyncIOMotorCollection,
    transaction_id: str,
    payload: TransactionUpdate,
    tz: Optional[tzinfo] = None,
) -> Transaction:
    object_id = to_object_id(transaction_id, 'transaction')
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise ValueError("No fields to update.")
    if 'date' in changes:
        changes['date'] = _localize(changes['date'], tz)
    changes['updated_at'] = datetime.now(timezone.utc)

    logger.info(f"Updating transaction {transaction_id} with fields {sorted(changes)}")
    try:
        doc = await collection.find_one_and_update(
            {'_id': object_id},
            {'$set': changes},
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as e:
        logger.error(f"Database error updating transaction {transaction_id}: {e}")
        raise ConnectionError(f"Database error updating transaction: {e}") from e
    if doc is None:
        logger.warning(f"Transaction {transaction_id} not found for update.")
        raise RecordNotFoundError("Transaction not found")
    return _document_to_transaction(doc)


async def delete_transaction(collection: AsyncIOMotorCollection, transaction_id: str) -> None:
    object_id = to_object_id(transaction_id, 'transaction')
    logger.info(f"Deleting transaction {transaction_id}")
    try:
        doc = await collection.find_one_and_delete({'_id': object_id})
    except PyMongoError as e:
        logger.error(f"Database error deleting transaction {transaction_id}: {e}")
        raise ConnectionError(f"Database error deleting transaction: {e}") from e
    if doc is None:
        logger.warning(f"Transaction {transaction_id} not found for deletion.")
        raise RecordNotFoundError("Transaction not found")
