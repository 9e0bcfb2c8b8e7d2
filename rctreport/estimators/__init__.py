from .rct import RCTEstimator, EffectsResult, EffectEstimate

__all__ = ["RCTEstimator", "EffectsResult", "EffectEstimate"]
