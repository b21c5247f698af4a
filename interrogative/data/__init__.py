#
# interrogative/data/__init__.py
# Entity models, snapshot persistence and the state containers.
#
# - models.py: pydantic entities (scans, reports, notifications, library, admin)
# - persistence.py: SnapshotSchema envelope, PersistenceAdapter, MemoryPersistence
# - db.py: aiosqlite SnapshotDatabase
# - base_store.py: PersistentStore, the observable base of every store
# - scan_store.py / community_store.py / notification_store.py /
#   learning_store.py / admin_store.py: the stores themselves
# - seed.py: demo content used on first launch
#
