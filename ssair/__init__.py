"""An SSA-form intermediate representation with an assembly printer, a bytecode writer, a verifier and optimisation passes."""

__version__ = "0.1.0"