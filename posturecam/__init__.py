"""
posturecam: live posture feedback client for a remote Analysis Service.
"""
