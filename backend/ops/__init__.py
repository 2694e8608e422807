"""Operations: health probes, metrics and logging configuration."""
