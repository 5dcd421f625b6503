"""
Queue-triggered image optimization worker.

Exposes the batch dispatcher, the storage and transcoder collaborators, and
the Lambda / FastAPI entry points that host them.
"""

