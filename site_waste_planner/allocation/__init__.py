"""
Allocation: forecast items → waste stream totals.

Modules
-------
synchronizer : ItemAllocation + compute_allocation() + summarise_allocation()
               + plan-document updates + sync_allocation() orchestration.
"""
