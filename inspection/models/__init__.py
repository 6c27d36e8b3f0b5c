from inspection.models.assessment import Assessment
from inspection.models.photo import Photo
from inspection.models.damage import Damage
from inspection.models.comparison import Comparison

__all__ = ["Assessment", "Photo", "Damage", "Comparison"]
