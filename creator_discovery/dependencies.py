"""Shared dependencies for FastAPI endpoints"""
import json
import os
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from creator_discovery.config import settings

# Global instances
_backend = None
_executor = None
_controller = None
_location_classifier = None


def _load_local_rows(path: Optional[str]) -> List[Dict[str, Any]]:
    """Read a JSON array of creator rows (or ``{"rows": [...]}``) from disk."""
    if not path:
        return []
    if not os.path.exists(path):
        print(f"⚠️ Local data file not found at: {path}")
        return []
    with open(path, "r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if isinstance(payload, dict):
        payload = payload.get("rows", [])
    return [row for row in payload if isinstance(row, dict)]


def init_backend() -> bool:
    """Initialize the creator table backend"""
    global _backend, _executor
    try:
        from creator_discovery.core.backend import DataFrameBackend
        from creator_discovery.core.postgrest_client import PostgrestBackend
        from creator_discovery.core.query import CreatorQueryExecutor

        if settings.supabase_configured:
            _backend = PostgrestBackend(
                settings.SUPABASE_URL,
                settings.SUPABASE_KEY,
                timeout=settings.REQUEST_TIMEOUT,
            )
            print("✅ Supabase backend initialized")
            print(f"   • URL: {settings.SUPABASE_URL}")
        else:
            rows = _load_local_rows(settings.LOCAL_DATA_PATH)
            _backend = DataFrameBackend(rows, table=settings.TABLE_NAME)
            print(f"✅ In-memory backend initialized ({len(rows)} rows)")

        _executor = CreatorQueryExecutor(
            _backend,
            table=settings.TABLE_NAME,
            max_retries=settings.FETCH_MAX_RETRIES,
            retry_delay=settings.FETCH_RETRY_DELAY,
            retry_max_wait=settings.FETCH_RETRY_MAX_WAIT,
            metrics_batch_size=settings.METRICS_BATCH_SIZE,
        )
        return True
    except Exception as e:
        print(f"❌ Error initializing backend: {e}")
        _backend = None
        _executor = None
        return False


def init_controller() -> bool:
    """Initialize the result-set controller with persisted view state"""
    global _controller
    if _executor is None and not init_backend():
        print("⚠️ Backend unavailable; result-set controller not initialized")
        return False
    try:
        from creator_discovery.services.result_set import ResultSetController
        from creator_discovery.services.state_store import JsonFileStateStore

        store = JsonFileStateStore(settings.STATE_PATH)
        _controller = ResultSetController(
            _executor,
            store,
            page_size=settings.PAGE_SIZE,
            ai_sample_size=settings.AI_SAMPLE_SIZE,
            timeout=settings.REQUEST_TIMEOUT,
        )
        print("✅ Result-set controller initialized")
        print(f"   • State path: {settings.STATE_PATH}")
        print(f"   • Restored mode={_controller.mode} page={_controller.page}")
        return True
    except Exception as e:
        print(f"❌ Error initializing result-set controller: {e}")
        _controller = None
        return False


def init_location_classifier() -> bool:
    """Initialize the location classifier (AI when configured, rules otherwise)"""
    global _location_classifier
    from creator_discovery.core.location import DeterministicLocationClassifier

    if settings.USE_AI_LOCATION and settings.OPENAI_API_KEY:
        from creator_discovery.core.location_ai import AILocationClassifier

        _location_classifier = AILocationClassifier(
            model=settings.LOCATION_MODEL,
            openai_api_key=settings.OPENAI_API_KEY,
        )
        print(f"✅ AI location classifier ready ({settings.LOCATION_MODEL})")
        return True

    _location_classifier = DeterministicLocationClassifier()
    if settings.USE_AI_LOCATION:
        print("⚠️ USE_AI_LOCATION set without OPENAI_API_KEY; using rule-based classifier")
    else:
        print("✅ Rule-based location classifier ready")
    return True


def get_backend():
    """Dependency to get the backend instance"""
    if _backend is None:
        raise HTTPException(
            status_code=503,
            detail="Backend not initialized. Check SUPABASE_URL / LOCAL_DATA_PATH settings."
        )
    return _backend


def get_controller():
    """Dependency to get the result-set controller"""
    if _controller is None:
        raise HTTPException(
            status_code=503,
            detail="Result-set controller not initialized."
        )
    return _controller


def get_location_classifier():
    """Dependency to get the location classifier"""
    if _location_classifier is None:
        raise HTTPException(
            status_code=503,
            detail="Location classifier not initialized."
        )
    return _location_classifier
