#
# interrogative/engine/__init__.py
# Scan simulation: the phase table driver and the pluggable classifier.
#
