from marrow.scoring.scorer import Candidate, ScoredNode, ScoringEngine

__all__ = ["Candidate", "ScoredNode", "ScoringEngine"]
