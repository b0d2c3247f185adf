"""svconform: SystemVerilog conformance harness with pluggable compiler backends."""

__version__ = "0.1.0"
