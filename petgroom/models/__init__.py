from .user import User
from .client import Client, Pet
from .package import Package, PackagePrice
from .subscription import ClientSubscription
from .scheduling import Scheduling, SchedulingPet

__all__ = [
    'User', 'Client', 'Pet', 'Package', 'PackagePrice',
    'ClientSubscription', 'Scheduling', 'SchedulingPet'
]
