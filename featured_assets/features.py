"""
Asset Feature Module

Every asset class carries a small decorative feature record derived once at
creation time from a packed 32-bit code::

    0x D L SS EEEE
       | |  |  +--- elements   (bits 0-15)
       | |  +------ saturation (bits 16-23)
       | +--------- lightness  (bits 24-27)
       +----------- destiny    (bits 28-31)

Features never influence ledger invariants.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Any, Optional
import random
import secrets

from .arithmetic import U32_MAX
from .storage import StorageRecord


class FeatureDestinyRank(IntEnum):
    """Destiny rank; codes above the top rank clamp to it"""
    MORTAL = 0
    AWAKENED = 1
    ADEPT = 2
    MASTER = 3
    SAGE = 4
    IMMORTAL = 5

    @classmethod
    def from_code(cls, value: int) -> 'FeatureDestinyRank':
        return cls(min(value, max(cls)))


class Element(Enum):
    """The five classical elements, with the bit offset of each affinity"""
    METAL = ("metal", 0)
    WOOD = ("wood", 3)
    WATER = ("water", 6)
    FIRE = ("fire", 9)
    EARTH = ("earth", 12)

    def __init__(self, label: str, shift: int):
        self.label = label
        self.shift = shift


ELEMENT_MASK = 0x7


@dataclass(frozen=True)
class FeatureElements:
    """Affinity 0-7 for each element, packed three bits per element"""
    metal: int = 0
    wood: int = 0
    water: int = 0
    fire: int = 0
    earth: int = 0

    @classmethod
    def from_code(cls, value: int) -> 'FeatureElements':
        return cls(**{e.label: (value >> e.shift) & ELEMENT_MASK for e in Element})

    def to_code(self) -> int:
        code = 0
        for element in Element:
            code |= (getattr(self, element.label) & ELEMENT_MASK) << element.shift
        return code

    @property
    def dominant(self) -> Optional[Element]:
        """Element with the highest affinity, None when all are zero"""
        best = max(Element, key=lambda e: getattr(self, e.label))
        return best if getattr(self, best.label) > 0 else None


@dataclass(frozen=True)
class FeatureRankedLevel:
    """A level 0-15 inside a rank 0-15 (high and low nibble of one byte)"""
    rank: int = 0
    level: int = 0

    @classmethod
    def from_code(cls, value: int) -> 'FeatureRankedLevel':
        return cls(rank=(value >> 4) & 0x0F, level=value & 0x0F)

    def to_code(self) -> int:
        return ((self.rank & 0x0F) << 4) | (self.level & 0x0F)


@dataclass
class AssetFeature(StorageRecord):
    """Decorative attributes of an asset class"""
    asset_id: int
    destiny: FeatureDestinyRank
    elements: FeatureElements
    saturation: FeatureRankedLevel
    lightness: int

    @property
    def storage_key(self) -> str:
        return str(self.asset_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "destiny": int(self.destiny),
            "elements": self.elements.to_code(),
            "saturation": self.saturation.to_code(),
            "lightness": self.lightness,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AssetFeature':
        return cls(
            asset_id=data["asset_id"],
            destiny=FeatureDestinyRank.from_code(data["destiny"]),
            elements=FeatureElements.from_code(data["elements"]),
            saturation=FeatureRankedLevel.from_code(data["saturation"]),
            lightness=data["lightness"],
        )

    def describe(self) -> Dict[str, Any]:
        """Human-readable view for API responses"""
        dominant = self.elements.dominant
        return {
            "destiny": self.destiny.name.lower(),
            "elements": {e.label: getattr(self.elements, e.label) for e in Element},
            "dominant_element": dominant.label if dominant else None,
            "saturation": {"rank": self.saturation.rank, "level": self.saturation.level},
            "lightness": self.lightness,
        }


class RandomSource(ABC):
    """Source of 32-bit random values for feature derivation"""

    @abstractmethod
    def generate_random(self, seed: int) -> int:
        pass


class SystemRandomSource(RandomSource):
    """Cryptographically strong randomness from the operating system"""

    def generate_random(self, seed: int) -> int:
        return secrets.randbits(32)


class SeededRandomSource(RandomSource):
    """Deterministic randomness, mixing the call seed into a seeded generator"""

    def __init__(self, seed: int = 0):
        self._random = random.Random(seed)

    def generate_random(self, seed: int) -> int:
        return (self._random.getrandbits(32) ^ seed) & U32_MAX


class FeatureAssigner:
    """Derives AssetFeature records from feature codes or a random source"""

    def __init__(self, random_source: Optional[RandomSource] = None):
        self.random_source = random_source or SystemRandomSource()

    @staticmethod
    def from_code(asset_id: int, feature_code: int) -> AssetFeature:
        """Unpack a 32-bit feature code"""
        feature_code &= U32_MAX
        return AssetFeature(
            asset_id=asset_id,
            destiny=FeatureDestinyRank.from_code(feature_code >> 28),
            elements=FeatureElements.from_code(feature_code & 0xFFFF),
            lightness=(feature_code >> 24) & 0x0F,
            saturation=FeatureRankedLevel.from_code((feature_code >> 16) & 0xFF),
        )

    def from_random(self, asset_id: int, seed: int = 0) -> AssetFeature:
        """Derive a feature from the random source"""
        return self.from_code(asset_id, self.random_source.generate_random(seed))
