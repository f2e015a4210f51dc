"""RoadBook API: learner-driver logbook backend."""
