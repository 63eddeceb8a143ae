"""Delivery orchestration for polling-only chat surfaces.

The surface gives no completion callback, so every transition is observed by
polling: busy detection, editor and submit control readiness, and artifact
appearance.  The single-submission state machine lives in ``submitter``, the
batch/mode dispatch in ``batch`` and artifact collection in ``artifacts``.
"""
