"""
Cross-chain integration harness for the Andromeda operating system.

Deploys the kernel and its sibling contracts on two IBC-connected chains,
builds AMP messages and drives the relayer between them.
"""

__version__ = "0.1.0"
