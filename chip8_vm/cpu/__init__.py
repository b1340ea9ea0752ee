"""Machine state, opcode decoding and execution."""
