import pytest

from backoffice.variants.models import EditorState
from backoffice.variants.normalize import normalize_listing
from backoffice.variants.state import reduce

# size [6, 7] x color [gold], one stored variant for size 7 / gold
LISTING = {
    "variants": [
        {
            "_id": "v7",
            "optionsArray": [{"name": "size", "value": "7"}, {"name": "color", "value": "gold"}],
            "sku": "OLD-7-GOLD",
            "price": 500,
            "inventory": 4,
            "manageStock": False,
            "images": ["https://cdn.example.test/v7.jpg"],
        }
    ],
    "variantOptions": [
        {"name": "size", "values": ["6", "7"]},
        {"name": "color", "values": ["gold"]},
    ],
}


def loaded(payload=None, product_id="p1") -> EditorState:
    state = EditorState(product_id=product_id)
    state = reduce(state, {"type": "load/start"})
    return reduce(state, {"type": "load/success",
                          "listing": normalize_listing(LISTING if payload is None else payload)})


def row_by(state, **options):
    for r in state.rows:
        if r.options == {k: str(v) for k, v in options.items()}:
            return r
    raise AssertionError(f"no row for {options}")


@pytest.fixture
def listing():
    return LISTING


@pytest.fixture
def state():
    return loaded()
