#
# interrogative/base/__init__.py
# Foundational pieces the stores and the CLI build on.
#
# - config.py: application configuration and logging setup
# - errors.py: structured ScannerError and error codes
# - clock.py: wall clock and a manual clock for deterministic tests
# - validation.py: scan target and free-text validation helpers
# - session.py: AppSession, which owns and wires every store
#
