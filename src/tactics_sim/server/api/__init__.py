from tactics_sim.server.api.router import router

__all__ = ["router"]
