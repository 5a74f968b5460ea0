"""Network reachability adapters."""

from cryptosage.adapters.network.connectivity import StaticConnectivity, TcpConnectivityMonitor

__all__ = ["StaticConnectivity", "TcpConnectivityMonitor"]
