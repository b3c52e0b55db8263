# neuroscroll/classifier/__init__.py
"""
Session classification.

Components:
- SessionFeatures / extract_features / normalize_features: model inputs
- PredictionModel: protocol for the opaque probability model
- LogisticModel: default fixed-weight model
- SessionClassifier: probability -> label, with rule-based fallback
"""

from neuroscroll.classifier.classifier import (
    FAILED_MODEL_VERSION,
    FALLBACK_CONFIDENCE,
    FALLBACK_MODEL_VERSION,
    AIClassificationResult,
    ClassificationBands,
    ModelInfo,
    SessionClassifier,
    SessionPair,
    label_probability,
)
from neuroscroll.classifier.features import (
    FEATURE_NAMES,
    FeatureScaling,
    SessionFeatures,
    extract_features,
    normalize_features,
)
from neuroscroll.classifier.model import LogisticModel, PredictionModel

__all__ = [
    # Constants
    "FAILED_MODEL_VERSION",
    "FALLBACK_CONFIDENCE",
    "FALLBACK_MODEL_VERSION",
    "FEATURE_NAMES",
    # Features
    "FeatureScaling",
    "SessionFeatures",
    "extract_features",
    "normalize_features",
    # Models
    "LogisticModel",
    "PredictionModel",
    # Classifier
    "AIClassificationResult",
    "ClassificationBands",
    "ModelInfo",
    "SessionClassifier",
    "SessionPair",
    "label_probability",
]
