from .numbers import clamp, percent, round_half_up

__all__ = ["clamp", "percent", "round_half_up"]
