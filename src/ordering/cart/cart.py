"""Cart lines submitted at checkout.

A cart only exists client-side until checkout; the engine receives it as a
list of line dicts and turns it into immutable ``CartLine`` values. Each line
is one piece of jewelry: a base model of some jewelry type plus the charms
placed on it, optionally attributed to the creator whose design was bought.
"""

from dataclasses import dataclass, field
from enum import Enum

from protean.exceptions import ValidationError


class ItemKind(Enum):
    """Closed set of stocked item collections."""

    NECKLACE = "necklace"
    BRACELET = "bracelet"
    EARRING = "earring"
    CHARM = "charms"

    @property
    def is_model(self) -> bool:
        return self is not ItemKind.CHARM

    @classmethod
    def model_kinds(cls) -> list["ItemKind"]:
        return [kind for kind in cls if kind.is_model]


@dataclass(frozen=True)
class PlacedCharm:
    charm_id: str
    name: str = ""
    with_clasp: bool = False


@dataclass(frozen=True)
class CartLine:
    line_id: str
    model_id: str
    jewelry_type: ItemKind
    model_name: str = ""
    jewelry_type_name: str = ""
    charms: tuple[PlacedCharm, ...] = field(default_factory=tuple)
    preview_image: str = ""
    creator_id: str | None = None
    creator_name: str | None = None
    creation_id: str | None = None
    creation_name: str | None = None

    @property
    def creation_label(self) -> str:
        return self.creation_name or self.model_name

    @classmethod
    def from_dict(cls, data: dict, position: int = 0) -> "CartLine":
        """Build a line from request data, raising ValidationError on malformed input."""
        prefix = f"cart[{position}]"
        if not isinstance(data, dict):
            raise ValidationError({prefix: ["Cart line must be an object"]})

        model_id = data.get("model_id")
        if not model_id:
            raise ValidationError({f"{prefix}.model_id": ["is required"]})

        try:
            jewelry_type = ItemKind(data.get("jewelry_type"))
        except ValueError:
            jewelry_type = None
        if jewelry_type is None or not jewelry_type.is_model:
            valid = ", ".join(kind.value for kind in ItemKind.model_kinds())
            raise ValidationError({f"{prefix}.jewelry_type": [f"must be one of: {valid}"]})

        raw_charms = data.get("charms") or []
        if not isinstance(raw_charms, list):
            raise ValidationError({f"{prefix}.charms": ["must be a list"]})

        charms = []
        for index, raw in enumerate(raw_charms):
            if not isinstance(raw, dict) or not raw.get("charm_id"):
                raise ValidationError({f"{prefix}.charms[{index}].charm_id": ["is required"]})
            charms.append(
                PlacedCharm(
                    charm_id=str(raw["charm_id"]),
                    name=raw.get("name") or "",
                    with_clasp=bool(raw.get("with_clasp", False)),
                )
            )

        return cls(
            line_id=str(data.get("line_id") or f"line-{position + 1}"),
            model_id=str(model_id),
            jewelry_type=jewelry_type,
            model_name=data.get("model_name") or "",
            jewelry_type_name=data.get("jewelry_type_name") or "",
            charms=tuple(charms),
            preview_image=data.get("preview_image") or "",
            creator_id=data.get("creator_id") or None,
            creator_name=data.get("creator_name") or None,
            creation_id=data.get("creation_id") or None,
            creation_name=data.get("creation_name") or None,
        )


def parse_cart(items: list) -> list[CartLine]:
    """Parse a checkout cart, rejecting empty or malformed carts."""
    if not isinstance(items, list) or not items:
        raise ValidationError({"cart": ["The cart is empty"]})
    return [CartLine.from_dict(item, position) for position, item in enumerate(items)]
