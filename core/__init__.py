"""
Core module for the SecureFab Node pipeline architecture.

Contains the event bus, typed events/messages, shared buffers, the stage
scheduler, protocol definitions (interfaces) and the detection-to-validation
algorithms.
"""
