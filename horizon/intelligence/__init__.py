from .forecaster import AdaptiveWeights, FeatureForecastEngine, FeatureStore, FeatureVector
from .regime import RegimeTrainer

__all__ = [
    "AdaptiveWeights",
    "FeatureForecastEngine",
    "FeatureStore",
    "FeatureVector",
    "RegimeTrainer",
]
