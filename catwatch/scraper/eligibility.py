"""Catwatch — Eligibility Filter.

Local rule-based filter applied to the merged record set before the
novelty check:

  1. Age rule: age_in_months must reach min_age_months. Unparsable ages
     are 0 and are therefore rejected by default (fail-closed).
  2. Grouped-adoption rule (toggle): drop animals that are only placed
     together with another one ("duo", "samen met ...", "Max (& Mia)").

The grouped phrases are Dutch, matching the default listing source,
plus the English equivalents. They are a textual heuristic, not ground
truth; expect the occasional miss on unseen phrasings.
"""

from __future__ import annotations

import re
from typing import Optional

from catwatch.config import FilterConfig
from catwatch.database.models import EligibilityReport, Record
from catwatch.utils.logger import get_logger

logger = get_logger(__name__)

# ── Grouped-adoption signals ─────────────────────────────
# (pattern, label) — checked against name and description
_GROUPED_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bduo\b"), "duo"),
    (re.compile(r"\bsamen\s+met\b"), "samen met"),
    (re.compile(r"\bsamen\s+(?:adopteren|geadopteerd|plaatsen|geplaatst|verhuizen|weg)\b"), "samen adopteren"),
    (re.compile(r"\bniet\s+(?:apart|alleen\s+geplaatst|zonder\s+(?:zijn|haar)\b)"), "niet apart"),
    (re.compile(r"\bmet\s+(?:zijn|haar|hun)\s+(?:broer|zus|broertje|zusje|maatje|vriendje|vriendinnetje|moeder|mama)\b"), "met broer/zus"),
    (re.compile(r"\bbroer(?:tje)?s?\s+(?:en|&)\s+zus(?:je)?s?\b|\bzus(?:je)?s?\s+(?:en|&)\s+broer(?:tje)?s?\b"), "broer en zus"),
    (re.compile(r"\bals\s+(?:koppel|paar|duo)\b"), "als koppel"),
    (re.compile(r"\b(?:together\s+with|bonded\s+pair|must\s+be\s+adopted\s+together)\b"), "together with"),
]

# Parenthetical co-occurrence marker in the name: "Max (en Mia)", "Max (& Mia)"
_NAME_PAIR_MARKER = re.compile(r"\(\s*(?:en|and|&|\+)\s+[^)]+\)", re.IGNORECASE)


class EligibilityFilter:
    """Applies the age and grouped-adoption rules.

    Attributes:
        config: The configured FilterConfig.
    """

    def __init__(self, config: FilterConfig) -> None:
        self.config = config
        logger.debug(
            "EligibilityFilter initialized: min age %d months, exclude grouped=%s, %d phrase patterns",
            config.min_age_months, config.exclude_grouped, len(_GROUPED_PATTERNS),
        )

    @staticmethod
    def grouped_reason(record: Record) -> Optional[str]:
        """Why a record looks like a grouped adoption, or None.

        First match wins: the name marker is checked before the phrase
        patterns, and the phrases in declaration order.
        """
        if _NAME_PAIR_MARKER.search(record.display_name):
            return "name marker"

        haystack = f"{record.display_name} {record.description}".lower()
        for pattern, label in _GROUPED_PATTERNS:
            if pattern.search(haystack):
                return label
        return None

    def is_old_enough(self, record: Record) -> bool:
        return record.age_in_months >= self.config.min_age_months

    def rejections(self, record: Record) -> dict[str, str]:
        """Rules a record fails, as {rule: reason}; empty when eligible.

        Both rules are always evaluated, so a record can fail both.
        Rule keys are "age" and "grouped".
        """
        failed: dict[str, str] = {}
        if not self.is_old_enough(record):
            failed["age"] = f"{record.age_in_months} < {self.config.min_age_months} months"
        if self.config.exclude_grouped:
            reason = self.grouped_reason(record)
            if reason:
                failed["grouped"] = reason
        return failed

    def apply(self, records: list[Record]) -> EligibilityReport:
        """Filter a record set, counting removals per rule.

        A record that fails both rules is counted under both.

        Args:
            records: Deduplicated records from all fetched pages.

        Returns:
            EligibilityReport with eligible records in input order.
        """
        report = EligibilityReport()

        for record in records:
            failed = self.rejections(record)
            if not failed:
                report.eligible.append(record)
                logger.debug(
                    "  ✅ PASS %s — %s — %d months",
                    record.record_id, record.display_name[:40], record.age_in_months,
                )
                continue

            if "age" in failed:
                report.removed_by_age += 1
            if "grouped" in failed:
                report.removed_as_grouped += 1
            logger.debug(
                "  ❌ SKIP %s — %s — %s",
                record.record_id, record.display_name[:40],
                "; ".join(f"{rule}: {why}" for rule, why in failed.items()),
            )

        logger.info(
            "Eligibility: %d passed, %d too young, %d grouped (of %d total)",
            len(report.eligible), report.removed_by_age,
            report.removed_as_grouped, len(records),
        )
        return report
