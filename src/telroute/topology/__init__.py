"""Line Routing Topology Module.

This module models how phone lines are routed through distribution
equipment:
- Nodes (Frames, slot devices, converters, sockets) and their capacity
- Port address tokens and their decoding per node kind
- Reassigning a port from one line to another while keeping each
  line's hop sequence contiguous
- Frame layout grids, port details, terminal labels and wire colors

Architecture: Clean Architecture with Hexagonal (Ports & Adapters)
"""
