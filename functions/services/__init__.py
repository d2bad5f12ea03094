"""Services used by the blueprint pipeline: LLM access, document decoding, PM review."""
