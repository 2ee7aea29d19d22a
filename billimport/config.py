"""YAML configuration loader for bill import.

Loads the two config files from the config directory:
  parsers.yaml     skip lists and processing limits
  categories.yaml  keyword rule tables and fallback category names

The package ships defaults under billimport/defaults/. Point
BILLIMPORT_CONFIG_DIR (or the config_dir argument) at another directory
to override them.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from billimport.categorize.matcher import CategoryRule, FallbackNames, RuleTables

DEFAULT_CONFIG_DIR = Path(__file__).parent / "defaults"


class Config:
    """Loads and provides access to the YAML configuration files."""

    def __init__(self, config_dir: Path | str | None = None):
        if config_dir is None:
            config_dir = os.environ.get("BILLIMPORT_CONFIG_DIR", DEFAULT_CONFIG_DIR)
        self.config_dir = Path(config_dir)
        if not self.config_dir.is_dir():
            raise FileNotFoundError(f"Config directory not found: {self.config_dir}")

        self._parsers: dict | None = None
        self._categories: dict | None = None

    def _load(self, filename: str) -> dict:
        path = self.config_dir / filename
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
        if data is None:
            raise ValueError(f"Empty config file: {path}")
        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping at top level of {path}")
        return data

    @property
    def parsers(self) -> dict:
        if self._parsers is None:
            self._parsers = self._load("parsers.yaml")
        return self._parsers

    @property
    def categories(self) -> dict:
        if self._categories is None:
            self._categories = self._load("categories.yaml")
        return self._categories

    # ── Parser settings ──────────────────────────────────

    @property
    def skip_statuses(self) -> tuple[str, ...]:
        """Status substrings marking refunded/closed rows."""
        return tuple(self.parsers.get("skip_statuses", []))

    @property
    def skip_types(self) -> tuple[str, ...]:
        """Transaction-type substrings marking wallet moves and transfers."""
        return tuple(self.parsers.get("skip_types", []))

    @property
    def max_input_bytes(self) -> int:
        return int(self.parsers.get("limits", {}).get("max_input_bytes", 10 * 1024 * 1024))

    @property
    def max_rows(self) -> int:
        return int(self.parsers.get("limits", {}).get("max_rows", 10000))

    @property
    def detect_scan_lines(self) -> int:
        return int(self.parsers.get("limits", {}).get("detect_scan_lines", 30))

    # ── Category rules ───────────────────────────────────

    @property
    def expense_rules(self) -> tuple[CategoryRule, ...]:
        return self._rule_table("expense")

    @property
    def income_rules(self) -> tuple[CategoryRule, ...]:
        return self._rule_table("income")

    def _rule_table(self, key: str) -> tuple[CategoryRule, ...]:
        rules: list[CategoryRule] = []
        for entry in self.categories.get("rules", {}).get(key, []):
            name = entry.get("category")
            keywords = entry.get("keywords") or []
            # Skip incomplete entries rather than matching everything
            if not name or not keywords:
                continue
            rules.append(CategoryRule(
                keywords=tuple(str(k) for k in keywords),
                category_name=name,
            ))
        return tuple(rules)

    @property
    def fallback_names(self) -> FallbackNames:
        """Names tried, in order, when no rule resolves to a category."""
        raw = self.categories.get("fallbacks", {})
        defaults = FallbackNames()
        return FallbackNames(
            other_expense=raw.get("other_expense", defaults.other_expense),
            other_income=raw.get("other_income", defaults.other_income),
            other=raw.get("other", defaults.other),
            uncategorized=raw.get("uncategorized", defaults.uncategorized),
        )

    @property
    def rule_tables(self) -> RuleTables:
        return RuleTables(
            expense=self.expense_rules,
            income=self.income_rules,
            fallbacks=self.fallback_names,
        )
