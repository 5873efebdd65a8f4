from .models import Todo

__all__ = ["Todo"]
