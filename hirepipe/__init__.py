"""Applicant pipeline engine: filtering, stage grouping, audited transitions, metrics."""
