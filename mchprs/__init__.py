"""Protocol packets, NBT, chunk storage, world helpers, TCP connections and redstone graph serialisation."""

__version__ = "0.1.0"