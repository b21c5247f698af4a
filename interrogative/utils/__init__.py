# interrogative/utils/__init__.py
#
# PURPOSE:
# Shared helpers used across the stores and the scan engine.
#
# KEY MODULES:
# - **observer.py**: Signal/Observable pub-sub used for store change notification
# - **async_helpers.py**: Logged fire-and-forget tasks and timeouts
#
