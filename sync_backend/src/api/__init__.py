"""
FastAPI sync backend package.

Reconciles offline client replicas with the server of record: change-log
pulls since a checkpoint and last-write-wins pushes applied in one
transaction. The application instance lives in `src.api.main`.
"""
