#!/usr/bin/env python3
"""
Conversion results

Every per-file step of the converters returns a ConversionResult instead of
raising; a BatchReport collects them and is saved as conversion_summary.json.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

CONVERTED = 'converted'
SKIPPED = 'skipped'
FAILED = 'failed'


@dataclass(frozen=True)
class ConversionResult:
    source: str
    kind: str
    status: str
    artifacts: Tuple[str, ...] = ()
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != FAILED

    @classmethod
    def converted(cls, source: str, kind: str, artifacts) -> 'ConversionResult':
        return cls(source, kind, CONVERTED, tuple(artifacts))

    @classmethod
    def skipped(cls, source: str, kind: str, reason: str) -> 'ConversionResult':
        return cls(source, kind, SKIPPED, (), reason)

    @classmethod
    def failed(cls, source: str, kind: str, reason: str) -> 'ConversionResult':
        return cls(source, kind, FAILED, (), reason)

    def to_dict(self) -> Dict:
        return {
            'source': self.source,
            'kind': self.kind,
            'status': self.status,
            'artifacts': list(self.artifacts),
            'reason': self.reason,
        }


@dataclass
class BatchReport:
    input_directory: str
    output_directory: str
    results: List[ConversionResult] = field(default_factory=list)

    def add(self, result: ConversionResult) -> ConversionResult:
        self.results.append(result)
        if result.status == FAILED:
            logger.error(f"{result.kind} {result.source}: {result.reason}")
        elif result.status == SKIPPED:
            logger.warning(f"Skipping {result.source}: {result.reason}")
        return result

    def extend(self, results):
        for r in results:
            self.add(r)

    def count(self, kind: Optional[str] = None, status: Optional[str] = None) -> int:
        return sum(1 for r in self.results
                   if (kind is None or r.kind == kind) and (status is None or r.status == status))

    @property
    def failures(self) -> List[ConversionResult]:
        return [r for r in self.results if r.status == FAILED]

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> Dict:
        kinds = sorted({r.kind for r in self.results})
        return {
            'input_directory': self.input_directory,
            'output_directory': self.output_directory,
            'totals': {
                kind: {
                    CONVERTED: self.count(kind, CONVERTED),
                    SKIPPED: self.count(kind, SKIPPED),
                    FAILED: self.count(kind, FAILED),
                }
                for kind in kinds
            },
            'results': [r.to_dict() for r in self.results],
        }

    def save(self, filepath: str) -> bool:
        try:
            with open(filepath, 'w') as f:
                json.dump(self.to_dict(), f, indent=2)
            logger.info(f"Saved conversion summary to {filepath}")
            return True
        except OSError as e:
            logger.error(f"Failed to save summary: {e}")
            return False
