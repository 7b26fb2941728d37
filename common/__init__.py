"""
Infrastructure shared by Coachie services.

Subpackages:
    auth      Firebase token verification and the Principal contract
    config    Environment-driven base settings
    database  Motor connection holder and the transient-failure retry policy
    utils     Response envelopes, typed exceptions and their handlers
"""
