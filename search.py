import logging
import re
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import get_documents

logger = logging.getLogger(__name__)

# collection -> fields matched against the query
SEARCH_FIELDS = {
    "songs": ("song", ("name", "desc")),
    "albums": ("album", ("name", "desc")),
    "users": ("user", ("username",)),
    "artists": ("artist", ("name", "bio")),
}

# Never send password hashes back from a user search
PROJECTIONS = {"user": {"password": 0}}


def build_filter(query: str, fields) -> Dict[str, Any]:
    # Literal, case-insensitive substring match
    pattern = re.escape(query)
    clauses = [{field: {"$regex": pattern, "$options": "i"}} for field in fields]
    if len(clauses) == 1:
        return clauses[0]
    return {"$or": clauses}


def search(db: Database, query: Optional[str]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Search songs, albums, users and artists for ``query``.

    All matches are returned, unpaginated. Every result key is present even
    when empty. A failure in any collection fails the whole search.
    """
    if not query:
        raise HTTPException(status_code=400, detail="Query required.")
    results: Dict[str, List[Dict[str, Any]]] = {}
    try:
        for key, (collection, fields) in SEARCH_FIELDS.items():
            results[key] = get_documents(
                db, collection, build_filter(query, fields), projection=PROJECTIONS.get(collection)
            )
    except PyMongoError:
        logger.exception("Search failed for query %r", query)
        raise HTTPException(status_code=500, detail="Search failed.")
    return results
