"""
Entity stores.

- entity_store.py: the shared optimistic/offline store pattern
- task_store.py, reminder_store.py, tag_store.py: one store per entity type
"""
