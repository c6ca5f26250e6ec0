from .coordinator import TunnelCoordinator, categorize_tunnel_error

__all__ = ["TunnelCoordinator", "categorize_tunnel_error"]
