"""
Analytics Package
=================
Point-in-time statistics over a daily tracking series.

Modules:
  point_in_time - causal cache builder (z-scores, ranks, index, overall)
  divergence    - subjective-vs-index gap classification + overview
  similarity    - nearest historical days by standardized profile
"""
