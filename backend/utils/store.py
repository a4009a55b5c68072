import logging
from typing import Awaitable, Callable, List, Optional, Protocol, TypeVar

from pymongo.errors import PyMongoError
from pymongo.read_concern import ReadConcern
from pymongo.write_concern import WriteConcern

from config.env import TRANSACTION_MAX_RETRIES
from utils.errors import InvalidState

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ============================================================
# ENTITY STORE CONTRACT
# ============================================================
# Everything that touches more than one entity goes through
# run_transaction(). Reads used for guard checks must be issued
# through the Transaction handle, never through the store itself.
# ============================================================


class Transaction(Protocol):
    async def get(self, collection: str, entity_id) -> Optional[dict]: ...

    async def find_one(self, collection: str, query: dict) -> Optional[dict]: ...

    async def find(self, collection: str, query: dict, sort=None) -> List[dict]: ...

    async def insert(self, collection: str, doc: dict) -> dict: ...

    async def update(self, collection: str, entity_id, fields: dict, *, where: Optional[dict] = None) -> bool: ...

    async def update_many(self, collection: str, query: dict, fields: dict) -> int: ...


class EntityStore(Protocol):
    async def get(self, collection: str, entity_id) -> Optional[dict]: ...

    async def find_one(self, collection: str, query: dict) -> Optional[dict]: ...

    async def find(self, collection: str, query: dict, sort=None) -> List[dict]: ...

    async def run_transaction(self, work: Callable[[Transaction], Awaitable[T]]) -> T: ...


# ============================================================
# MONGODB IMPLEMENTATION
# ============================================================

class MongoTransaction:
    def __init__(self, db, session=None):
        self._db = db
        self._session = session

    async def get(self, collection, entity_id):
        return await self._db[collection].find_one({"_id": entity_id}, session=self._session)

    async def find_one(self, collection, query):
        return await self._db[collection].find_one(query, session=self._session)

    async def find(self, collection, query, sort=None):
        cursor = self._db[collection].find(query, session=self._session)
        if sort:
            cursor = cursor.sort(sort)
        return await cursor.to_list(None)

    async def insert(self, collection, doc):
        result = await self._db[collection].insert_one(doc, session=self._session)
        doc["_id"] = result.inserted_id
        return doc

    async def update(self, collection, entity_id, fields, *, where=None):
        query = {"_id": entity_id}
        if where:
            query.update(where)

        result = await self._db[collection].update_one(
            query,
            {"$set": fields},
            session=self._session,
        )
        return result.matched_count == 1

    async def update_many(self, collection, query, fields):
        result = await self._db[collection].update_many(
            query,
            {"$set": fields},
            session=self._session,
        )
        return result.modified_count


class MongoEntityStore:
    """
    Motor-backed store. Requires a replica set (multi-document transactions).
    """

    def __init__(self, client, db, *, max_retries: int = TRANSACTION_MAX_RETRIES):
        self._client = client
        self._db = db
        self._reader = MongoTransaction(db)
        self._max_retries = max(1, max_retries)

    async def get(self, collection, entity_id):
        return await self._reader.get(collection, entity_id)

    async def find_one(self, collection, query):
        return await self._reader.find_one(collection, query)

    async def find(self, collection, query, sort=None):
        return await self._reader.find(collection, query, sort=sort)

    async def run_transaction(self, work):
        attempt = 0

        while True:
            attempt += 1
            async with await self._client.start_session() as session:
                try:
                    return await self._run_once(session, work)

                except PyMongoError as e:
                    if not e.has_error_label("TransientTransactionError"):
                        raise

                    if attempt >= self._max_retries:
                        logger.warning("TRANSACTION_CONFLICT_EXHAUSTED attempts=%s", attempt)
                        raise InvalidState("Concurrent modification, please retry") from e

                    logger.info("TRANSACTION_CONFLICT_RETRY attempt=%s", attempt)

    async def _run_once(self, session, work):
        session.start_transaction(
            read_concern=ReadConcern("snapshot"),
            write_concern=WriteConcern("majority"),
        )
        try:
            result = await work(MongoTransaction(self._db, session))
        except BaseException:
            if session.in_transaction:
                await session.abort_transaction()
            raise

        await self._commit(session)
        return result

    async def _commit(self, session):
        # An unknown commit result only re-sends the commit; the body
        # already ran and must not be replayed.
        attempt = 0

        while True:
            attempt += 1
            try:
                await session.commit_transaction()
                return

            except PyMongoError as e:
                if not e.has_error_label("UnknownTransactionCommitResult"):
                    raise

                if attempt >= self._max_retries:
                    logger.warning("TRANSACTION_COMMIT_UNKNOWN attempts=%s", attempt)
                    raise

                logger.info("TRANSACTION_COMMIT_RETRY attempt=%s", attempt)
