"""
Facility optimiser: score eligible facilities and recommend one per stream.

Modules
-------
scoring           : ScoredCandidate + score_candidates() - normalised
                    weighted scoring with missing-dimension fallback.
facility_optimiser: eligible_candidates() + build_reason() + run_optimiser().
"""
