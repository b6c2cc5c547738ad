"""Multi-source retrieval fusion with iterative refinement."""
