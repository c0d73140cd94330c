from dataclasses import dataclass


@dataclass(frozen=True)
class StyleDescriptor:
    fill_color: str
    stroke_color: str

    def to_dict(self) -> dict:
        return {"fill_color": self.fill_color, "stroke_color": self.stroke_color}


VISUAL_STYLE = {
    "domain": {
        "shape": "group",
        "fill": "lightblue",
        "stroke": "blue",
        "size": (120, 60),
        "label_position": "north_west",
    },
    "system": {
        "shape": "rectangle",
        "fill": "lightgreen",
        "stroke": "green",
        "size": (100, 50),
        "label_position": "center",
    },
    "table": {
        "shape": "rectangle",
        "fill": "lightyellow",
        "stroke": "orange",
        "size": (60, 30),
        "label_position": "center",
    },
    "default": {
        "shape": "rectangle",
        "fill": "gray",
        "stroke": "black",
        "size": (60, 30),
        "label_position": "center",
    },
}

# Size a collapsed group shrinks to
FOLDER_SIZE = (120, 40)


def style_entry(kind: str) -> dict:
    return VISUAL_STYLE.get(kind, VISUAL_STYLE["default"])


def resolve_style(kind: str) -> StyleDescriptor:
    """Fill/stroke for a node kind. Unknown kinds get the default colours."""
    entry = style_entry(kind)
    return StyleDescriptor(fill_color=entry["fill"], stroke_color=entry["stroke"])


def default_size(kind: str) -> tuple:
    return style_entry(kind)["size"]
