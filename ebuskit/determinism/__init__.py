"""Canonical JSON hashing, an expiring idempotency store and deterministic retry schedules."""