"""
Live capture module.

Samples a camera on a fixed cadence and dispatches each still to the
Analysis Service without waiting for earlier requests to finish.
"""
