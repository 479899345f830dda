"""
HTTP API for the Markov chain service.
"""
