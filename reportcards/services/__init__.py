"""Engine, grading, export and batch orchestration services."""
