"""
Coachie social API.

Friend requests, goal-matched circles, direct messaging and forum
engagement on top of MongoDB, served with FastAPI.
"""
