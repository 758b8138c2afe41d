"""
API server package — FastAPI app over the trust record store and claim gate.
"""
