from .generate_vehicle_video import generate_vehicle_video

__all__ = ["generate_vehicle_video"]
