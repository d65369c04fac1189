"""
Token usage tracker for AI vendor calls.

Tracks token usage per model and refuses requests that would exceed the
daily or monthly budget.
"""
import json
import os
from datetime import datetime
from typing import Any, Dict, Optional

from loguru import logger


class TokenUsageTracker:
    """Tracks token usage for AI vendor calls."""

    def __init__(self, storage_path: Optional[str] = None):
        """Initialize the token usage tracker.

        Args:
            storage_path: Optional JSON file persisting usage between runs
        """
        self.storage_path = storage_path or os.getenv("LLM_USAGE_FILE") or None
        self.daily_limit = int(os.getenv("LLM_DAILY_TOKEN_LIMIT", "1000000"))
        self.monthly_limit = int(os.getenv("LLM_MONTHLY_TOKEN_LIMIT", "30000000"))
        self.alert_percent = int(os.getenv("LLM_ALERT_AT_PERCENT", "80"))
        self.track_usage = os.getenv("LLM_TRACK_USAGE", "true").lower() == "true"

        self._load_usage_data()

    def _load_usage_data(self) -> None:
        """Load token usage data from storage, resetting stale counters."""
        self.usage_data = self._get_empty_usage_data()
        if not self.track_usage or not self.storage_path or not os.path.exists(self.storage_path):
            return

        try:
            with open(self.storage_path, "r") as f:
                stored = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading token usage data: {e}")
            return

        self.usage_data.update(stored)
        today = datetime.now().strftime("%Y-%m-%d")
        current_month = datetime.now().strftime("%Y-%m")

        if self.usage_data.get("daily_date") != today:
            logger.info(f"Resetting daily token counter (was: {self.usage_data.get('daily_tokens', 0)})")
            self.usage_data["daily_tokens"] = 0
            self.usage_data["daily_date"] = today

        if self.usage_data.get("monthly_date") != current_month:
            logger.info(f"Resetting monthly token counter (was: {self.usage_data.get('monthly_tokens', 0)})")
            self.usage_data["monthly_tokens"] = 0
            self.usage_data["monthly_date"] = current_month

    def _get_empty_usage_data(self) -> Dict[str, Any]:
        return {
            "daily_tokens": 0,
            "monthly_tokens": 0,
            "total_tokens": 0,
            "daily_date": datetime.now().strftime("%Y-%m-%d"),
            "monthly_date": datetime.now().strftime("%Y-%m"),
            "request_count": 0,
            "last_updated": datetime.now().isoformat(),
            "models": {},
        }

    def _save_usage_data(self) -> None:
        if not self.storage_path:
            return
        try:
            with open(self.storage_path, "w") as f:
                json.dump(self.usage_data, f, indent=2)
        except OSError as e:
            logger.error(f"Error saving token usage data: {e}")

    def record_usage(self, model: str, tokens: int, request_type: str = "completion") -> None:
        """Record token usage for one AI call."""
        if not self.track_usage:
            return

        self.usage_data["daily_tokens"] += tokens
        self.usage_data["monthly_tokens"] += tokens
        self.usage_data["total_tokens"] += tokens
        self.usage_data["request_count"] += 1
        self.usage_data["last_updated"] = datetime.now().isoformat()

        model_usage = self.usage_data["models"].setdefault(model, {"tokens": 0, "requests": 0, "types": {}})
        model_usage["tokens"] += tokens
        model_usage["requests"] += 1
        type_usage = model_usage["types"].setdefault(request_type, {"tokens": 0, "requests": 0})
        type_usage["tokens"] += tokens
        type_usage["requests"] += 1

        self._save_usage_data()
        self._check_limits()

    def can_make_request(self, estimated_tokens: int = 1000) -> bool:
        """Check if a request can be made without exceeding limits."""
        if not self.track_usage:
            return True

        daily_usage = self.usage_data["daily_tokens"] + estimated_tokens
        monthly_usage = self.usage_data["monthly_tokens"] + estimated_tokens
        return daily_usage <= self.daily_limit and monthly_usage <= self.monthly_limit

    def get_usage_stats(self) -> Dict[str, Any]:
        """Get current token usage statistics."""
        if not self.track_usage:
            return {"tracking_enabled": False, "message": "Token usage tracking is disabled"}

        return {
            "tracking_enabled": True,
            "daily_usage": {
                "tokens": self.usage_data["daily_tokens"],
                "limit": self.daily_limit,
                "remaining": self.daily_limit - self.usage_data["daily_tokens"],
            },
            "monthly_usage": {
                "tokens": self.usage_data["monthly_tokens"],
                "limit": self.monthly_limit,
                "remaining": self.monthly_limit - self.usage_data["monthly_tokens"],
            },
            "total_usage": {
                "tokens": self.usage_data["total_tokens"],
                "requests": self.usage_data["request_count"],
            },
            "models": self.usage_data["models"],
        }

    def _check_limits(self) -> None:
        daily_percent = (self.usage_data["daily_tokens"] / self.daily_limit) * 100
        monthly_percent = (self.usage_data["monthly_tokens"] / self.monthly_limit) * 100

        if daily_percent >= self.alert_percent:
            logger.warning(f"Daily token usage at {daily_percent:.2f}% of limit")
        if monthly_percent >= self.alert_percent:
            logger.warning(f"Monthly token usage at {monthly_percent:.2f}% of limit")
