"""JWT authentication for the learner API."""
