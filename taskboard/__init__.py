# Task board sync core: authoritative board state and realtime fan-out
#
# Components:
#   schema.py    - Data model (Task, Attachment, Column, Priority, Category) and errors
#   store.py     - In-memory authoritative board (TaskStore)
#   processor.py - Validates and applies mutations, produces deltas
#   broadcast.py - Session outboxes and ordered fan-out (BroadcastCoordinator)
#   gateway.py   - Socket.IO boundary: connect, operations, disconnect
#   replica.py   - apply_delta() for client-side replicas
#   stats.py     - Display aggregates derived from board state
#   config.py    - Server configuration (YAML + environment)
#   client.py    - Python clients (realtime and HTTP)
