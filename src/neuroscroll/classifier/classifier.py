# neuroscroll/classifier/classifier.py
"""
Session classifier: features -> model probability -> health label.

Degrades instead of failing: whenever the model is missing or misbehaves the
result falls back to the rule-based ``metrics.health_classification`` with a
fixed low confidence and ``model_version="fallback"``.

Usage::

    classifier = SessionClassifier()
    await classifier.initialize()
    result = await classifier.classify_session(session, metrics)
    classifier.dispose()
"""

from __future__ import annotations

import inspect
import logging
import math
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import BaseModel

from neuroscroll.classifier.features import (
    FeatureScaling,
    SessionFeatures,
    extract_features,
    normalize_features,
)
from neuroscroll.classifier.model import LogisticModel, PredictionModel
from neuroscroll.config import DEFAULT_MODEL_VERSION
from neuroscroll.exceptions import ClassificationError, ModelUnavailableError
from neuroscroll.models.enums import HealthClassification
from neuroscroll.models.metrics import ComputedMetrics
from neuroscroll.models.session import ViewingSession

logger = logging.getLogger(__name__)

FALLBACK_MODEL_VERSION = "fallback"
FAILED_MODEL_VERSION = "failed"
FALLBACK_CONFIDENCE = 0.3

SessionPair = tuple[ViewingSession, ComputedMetrics]


class AIClassificationResult(BaseModel):
    """Outcome of classifying one session."""

    classification: HealthClassification
    confidence: float
    features: SessionFeatures
    model_version: str


class ModelInfo(BaseModel):
    is_loaded: bool
    version: str
    is_loading: bool


class ClassificationBands(BaseModel):
    """Probability bands mapped onto labels."""

    doomscroll_above: float = 0.7
    healthy_below: float = 0.3
    unknown_confidence: float = 0.5


def label_probability(
    probability: float,
    bands: ClassificationBands | None = None,
) -> tuple[HealthClassification, float]:
    """Map a doomscroll probability to ``(label, confidence)``."""
    b = bands or ClassificationBands()
    if probability > b.doomscroll_above:
        return HealthClassification.DOOMSCROLL, abs(probability - 0.5) * 2
    if probability < b.healthy_below:
        return HealthClassification.HEALTHY, abs(probability - 0.5) * 2
    return HealthClassification.UNKNOWN, b.unknown_confidence


class SessionClassifier:
    """Classifies sessions with an opaque prediction model.

    The model is built lazily by ``model_factory`` (default: a fixed-weight
    ``LogisticModel``) unless one is passed in directly.
    """

    def __init__(
        self,
        model: PredictionModel | None = None,
        model_factory: Callable[[], Any] | None = None,
        model_version: str = DEFAULT_MODEL_VERSION,
        scaling: FeatureScaling | None = None,
        bands: ClassificationBands | None = None,
    ) -> None:
        self._model = model
        self._model_factory = model_factory or LogisticModel
        self._model_version = model_version
        self._is_loading = False
        self.scaling = scaling or FeatureScaling()
        self.bands = bands or ClassificationBands()

    @property
    def model(self) -> PredictionModel | None:
        return self._model

    # --- Lifecycle ---

    async def initialize(self) -> None:
        """Build the model if none is loaded. Failures leave it unloaded."""
        if self._model is not None or self._is_loading:
            return

        self._is_loading = True
        try:
            model = self._model_factory()
            if inspect.isawaitable(model):
                model = await model
            self._model = model
            logger.info(f"Prediction model {self._model_version} ready")
        except Exception:
            logger.exception("Failed to initialize prediction model")
            self._model = None
        finally:
            self._is_loading = False

    def dispose(self) -> None:
        """Release the model; the next classification rebuilds it."""
        model, self._model = self._model, None
        dispose = getattr(model, "dispose", None)
        if callable(dispose):
            dispose()

    def get_model_info(self) -> ModelInfo:
        return ModelInfo(
            is_loaded=self._model is not None,
            version=self._model_version,
            is_loading=self._is_loading,
        )

    # --- Classification ---

    def extract_features(self, session: ViewingSession, metrics: ComputedMetrics) -> SessionFeatures:
        return extract_features(session, metrics)

    def fallback_result(self, session: ViewingSession, metrics: ComputedMetrics) -> AIClassificationResult:
        """Rule-based result used whenever the model cannot be trusted."""
        return AIClassificationResult(
            classification=metrics.health_classification,
            confidence=FALLBACK_CONFIDENCE,
            features=extract_features(session, metrics),
            model_version=FALLBACK_MODEL_VERSION,
        )

    async def _predict(self, rows: Sequence[Sequence[float]]) -> list[float]:
        if self._model is None:
            await self.initialize()
        if self._model is None:
            raise ModelUnavailableError("Model not available")

        probabilities = self._model.predict(rows)
        if inspect.isawaitable(probabilities):
            probabilities = await probabilities
        probabilities = [float(p) for p in probabilities]

        if len(probabilities) != len(rows):
            raise ClassificationError(f"Model returned {len(probabilities)} predictions for {len(rows)} rows")
        for p in probabilities:
            if not math.isfinite(p) or not 0.0 <= p <= 1.0:
                raise ClassificationError(f"Model returned invalid probability {p!r}")
        return probabilities

    def _result(self, features: SessionFeatures, probability: float) -> AIClassificationResult:
        classification, confidence = label_probability(probability, self.bands)
        return AIClassificationResult(
            classification=classification,
            confidence=confidence,
            features=features,
            model_version=self._model_version,
        )

    async def classify_session(self, session: ViewingSession, metrics: ComputedMetrics) -> AIClassificationResult:
        """Classify one session. Never raises."""
        try:
            features = extract_features(session, metrics)
            (probability,) = await self._predict([normalize_features(features, self.scaling)])
            return self._result(features, probability)
        except Exception as e:
            logger.warning(f"Classification failed for session {session.id}, using rule-based fallback: {e}")
            return self.fallback_result(session, metrics)

    async def classify_sessions(self, pairs: Sequence[SessionPair]) -> list[AIClassificationResult]:
        """Classify a batch in one model call; same length and order as input.

        Any failure falls back uniformly for the whole batch.
        """
        if not pairs:
            return []

        try:
            features = [extract_features(session, metrics) for session, metrics in pairs]
            probabilities = await self._predict([normalize_features(f, self.scaling) for f in features])
            return [self._result(f, p) for f, p in zip(features, probabilities)]
        except Exception as e:
            logger.warning(f"Batch classification of {len(pairs)} sessions failed, using fallback: {e}")
            return [self.fallback_result(session, metrics) for session, metrics in pairs]
