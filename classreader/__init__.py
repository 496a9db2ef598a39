"""Reading of JVM class files and decoding of their descriptors and bytecode."""

__version__ = "0.1.0"