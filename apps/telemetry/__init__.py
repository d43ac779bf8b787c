"""
Telemetry app.

Holds the raw signals alert rules are evaluated against: application log
entries and deployment outcomes. Ingestion and search live outside this
project; here the rows are only read by the evaluator and pruned by the
retention job.
"""
