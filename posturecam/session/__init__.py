"""
Session module: feedback history, session state and the controller that
switches between clip upload and live capture.
"""
