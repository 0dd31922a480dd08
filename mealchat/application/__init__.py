"""Application layer: session, reconciler, local state and commands."""
