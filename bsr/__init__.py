"""Bucket Schema Reconciler (BSR).

Makes the buckets of a document-store cluster match a declared list of
tables:
 - validate / update / create / create-drop / drop strategies
 - one primary query index per bucket, named ``<bucket>_primary``
 - an event log and run history in SQLite
 - a small HTTP API and CLI around the reconciler

The implementation is intentionally small so it can be audited and explained.
"""
