"""HTTP surface over a process-local graph store and context engine."""
