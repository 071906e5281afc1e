from __future__ import annotations

import json
import logging
import os
import time
from datetime import datetime, timezone

from config import MAX_SAVED_CONFIGS, PORTFOLIO_STORE_PATH
from portfolio_types import PortfolioConfig, RebalancePolicy

logger = logging.getLogger(__name__)

STORAGE_LIMIT_BYTES = 5 * 1024 * 1024


class PortfolioStorageError(Exception):
    """Saved portfolios could not be written."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class PortfolioStore:
    """Named portfolio configurations kept in a JSON file."""

    def __init__(self, path: str = PORTFOLIO_STORE_PATH, max_configs: int = MAX_SAVED_CONFIGS):
        self.path = path
        self.max_configs = max_configs

    # ----------------------------
    # File access
    # ----------------------------

    def _read(self) -> list[PortfolioConfig]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return [PortfolioConfig.from_dict(c) for c in data.get("configurations", [])]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.error("Failed to load portfolios from %s: %s", self.path, exc)
            return []

    def _write(self, configs: list[PortfolioConfig]) -> None:
        payload = {"configurations": [c.to_dict() for c in configs]}
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
        except OSError as exc:
            logger.error("Failed to save portfolios to %s: %s", self.path, exc)
            raise PortfolioStorageError(
                "Could not write saved portfolios. Please delete old portfolios."
            ) from exc

    # ----------------------------
    # Operations
    # ----------------------------

    def list_configs(self) -> list[PortfolioConfig]:
        return self._read()

    def get(self, config_id: str) -> PortfolioConfig | None:
        for c in self._read():
            if c.id == config_id:
                return c
        return None

    def save(
        self,
        name: str,
        weights: dict[str, float],
        initial_investment: float,
        selected_assets: list[str] | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        rebalance_policy: RebalancePolicy = RebalancePolicy.NONE,
    ) -> PortfolioConfig:
        configs = self._read()
        now = _now_iso()
        stamp = int(time.time() * 1000)
        taken = {c.id for c in configs}
        while f"portfolio-{stamp}" in taken:
            stamp += 1
        config = PortfolioConfig(
            id=f"portfolio-{stamp}",
            name=name,
            selected_assets=list(selected_assets if selected_assets is not None else weights),
            weights=dict(weights),
            initial_investment=float(initial_investment),
            created_at=now,
            last_modified=now,
            start_date=start_date,
            end_date=end_date,
            rebalance_policy=RebalancePolicy(rebalance_policy),
        )
        # oldest first, so drop from the front
        while len(configs) >= self.max_configs:
            configs.pop(0)
        configs.append(config)
        self._write(configs)
        logger.info("Saved portfolio '%s' (%s)", name, config.id)
        return config

    def delete(self, config_id: str) -> None:
        configs = [c for c in self._read() if c.id != config_id]
        self._write(configs)

    def update(self, config_id: str, **changes) -> PortfolioConfig | None:
        configs = self._read()
        for i, c in enumerate(configs):
            if c.id != config_id:
                continue
            data = c.to_dict()
            for key, value in changes.items():
                if key in ("id", "created_at"):
                    continue
                if isinstance(value, RebalancePolicy):
                    value = value.value
                data[key] = value
            data["last_modified"] = _now_iso()
            configs[i] = PortfolioConfig.from_dict(data)
            self._write(configs)
            return configs[i]
        return None

    def storage_stats(self) -> dict:
        used = os.path.getsize(self.path) if os.path.exists(self.path) else 0
        return {
            "used": used,
            "limit": STORAGE_LIMIT_BYTES,
            "percentage": used / STORAGE_LIMIT_BYTES * 100.0,
        }
