"""Application layer - lifecycle orchestration and the ports it drives."""
