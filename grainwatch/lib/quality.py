"""Grain storage quality scoring.

Grain quality is driven almost entirely by moisture, which the storage
humidity sensor tracks. Moisture standards used for the bands:

- <= 12%: Excellent (safe for long-term storage)
- 12-14%: Good (safe for medium-term storage)
- 14-16%: Fair (monitor closely, short-term only)
- 16-18%: Poor (risk of mold growth)
- 18-20%: Critical (immediate action required)
- > 20%: Severe (spoilage imminent)
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from grainwatch.lib.config import (
    QUALITY_TREND_DELTA,
    QUALITY_TREND_WINDOW,
    QualityGrade,
)
from grainwatch.lib.reading import Reading, isoformat

# Temperature above which warm, moist grain spoils faster
_HEAT_RISK_TEMPERATURE = 25
_HEAT_RISK_HUMIDITY = 14
_HEAT_RISK_PENALTY = 10


@dataclass(frozen=True, slots=True)
class _Band:
    upper: float  # inclusive upper humidity bound
    score: int
    grade: QualityGrade
    status: str
    color: str
    shelf_life: str
    issues: tuple[str, ...]
    recommendations: tuple[str, ...]


_BANDS = (
    _Band(
        12, 95, QualityGrade.EXCELLENT, "✅ OPTIMAL", "#22c55e", "12+ months",
        (),
        (
            "Perfect moisture level for long-term storage",
            "Continue maintaining current conditions",
        ),
    ),
    _Band(
        14, 85, QualityGrade.GOOD, "✅ SAFE", "#84cc16", "6-12 months",
        (),
        (
            "Good storage conditions maintained",
            "Safe for 6-12 months storage",
        ),
    ),
    _Band(
        16, 70, QualityGrade.FAIR, "⚠️ MONITOR", "#eab308", "3-6 months",
        ("Moisture slightly elevated",),
        (
            "Increase ventilation to reduce humidity",
            "Safe for 3-6 months storage only",
            "Check for condensation regularly",
        ),
    ),
    _Band(
        18, 50, QualityGrade.POOR, "⚠️ RISK", "#f97316", "1-3 months",
        (
            "High moisture - Risk of mold growth",
            "Grain respiration may cause heating",
        ),
        (
            "URGENT: Reduce humidity immediately",
            "Use dehumidifiers or improve ventilation",
            "Inspect grain for mold signs",
            "Consider drying the grain",
        ),
    ),
    _Band(
        20, 30, QualityGrade.CRITICAL, "🚨 DANGER", "#ef4444", "< 1 month",
        (
            "CRITICAL moisture level!",
            "Rapid mold growth likely",
            "Grain heating probable",
            "Quality degradation in progress",
        ),
        (
            "IMMEDIATE ACTION REQUIRED",
            "Turn on dehumidifiers NOW",
            "Inspect grain immediately",
            "Consider emergency drying",
            "Separate affected batches",
        ),
    ),
    _Band(
        float("inf"), 10, QualityGrade.SEVERE, "🚨 EMERGENCY", "#dc2626",
        "Days only",
        (
            "SEVERE moisture - Grain spoilage imminent!",
            "Mycotoxin contamination risk",
            "Complete quality loss within days",
        ),
        (
            "EMERGENCY: Stop all storage operations",
            "Dry grain immediately or discard",
            "Do not mix with other batches",
            "Consult grain quality expert",
        ),
    ),
)


@dataclass(slots=True)
class QualityReport:
    """Result of scoring one reading."""

    score: int
    grade: QualityGrade
    status: str
    color: str
    humidity: float
    temperature: float
    estimated_shelf_life: str
    device_id: str
    analyzed_at: datetime
    issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "grade": str(self.grade),
            "status": self.status,
            "color": self.color,
            "humidity": self.humidity,
            "temperature": self.temperature,
            "issues": list(self.issues),
            "recommendations": list(self.recommendations),
            "estimatedShelfLife": self.estimated_shelf_life,
            "analyzedAt": isoformat(self.analyzed_at),
            "deviceId": self.device_id,
        }


def _band_for(humidity: float) -> _Band:
    for band in _BANDS:
        if humidity <= band.upper:
            return band
    return _BANDS[-1]  # NaN falls through every comparison


def score(
    reading: Reading,
    history: Sequence[Reading] = (),
    *,
    now: datetime | None = None,
) -> QualityReport:
    """Score a reading's storage conditions.

    Args:
        reading: The reading to score.
        history: Earlier readings for the same device, oldest first. Only
            the last 12 are used, and only when at least 12 are given.
        now: Analysis timestamp, defaults to the current time.
    """
    humidity = reading.humidity
    band = _band_for(humidity)

    points = band.score
    issues = list(band.issues)
    recommendations = list(band.recommendations)

    if (
        reading.temperature > _HEAT_RISK_TEMPERATURE
        and humidity > _HEAT_RISK_HUMIDITY
    ):
        points -= _HEAT_RISK_PENALTY
        issues.append("High temperature + humidity = Accelerated spoilage risk")
        recommendations.append("High temp + moisture combination is dangerous")

    # Trend notes are advisory only and never change the score
    if len(history) >= QUALITY_TREND_WINDOW:
        recent = history[-QUALITY_TREND_WINDOW:]
        average = sum(r.humidity for r in recent) / len(recent)
        delta = humidity - average
        if delta > QUALITY_TREND_DELTA:
            issues.append(
                f"Humidity rising rapidly (+{delta:.1f}% in last hour)"
            )
            recommendations.append("Investigate source of moisture increase")
        elif delta < -QUALITY_TREND_DELTA:
            recommendations.append(
                f"Good: Humidity decreasing (-{abs(delta):.1f}% in last hour)"
            )

    return QualityReport(
        score=max(0, min(100, points)),
        grade=band.grade,
        status=band.status,
        color=band.color,
        humidity=humidity,
        temperature=reading.temperature,
        estimated_shelf_life=band.shelf_life,
        device_id=reading.device_id,
        analyzed_at=now or datetime.now(UTC),
        issues=issues,
        recommendations=recommendations,
    )


def format_quality_report(report: QualityReport) -> dict[str, Any]:
    """Summarize a report for the dashboard quality card."""
    return {
        "summary": f"{report.status} - Quality Score: {report.score}/100",
        "grade": str(report.grade),
        "score": report.score,
        "color": report.color,
        "humidity": f"{report.humidity}%",
        "shelfLife": report.estimated_shelf_life,
        "issueCount": len(report.issues),
        "hasIssues": bool(report.issues),
        "details": {
            "issues": list(report.issues),
            "recommendations": list(report.recommendations),
        },
    }
