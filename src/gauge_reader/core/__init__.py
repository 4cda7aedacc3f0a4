"""Detection entities, detectors and post-processing."""
