"""Google Photos: the library timeline at photos.google.com.

Signed-out sessions are redirected to www.google.com/photos/about/, so the
landing address itself is the sign-in check. Detail views live at
``https://photos.google.com/photo/<id>``; the grid links to them with
relative ``./photo/<id>`` hrefs.
"""
from ..adapter import PathSegmentRule


class GooglePhotosAdapter:
    name = "gphotos"
    landing_url = "https://photos.google.com/"
    item_href_prefix = "./photo/"

    key_newer = "ArrowLeft"
    key_older = "ArrowRight"
    key_select = "ArrowRight"
    key_open = "Enter"
    key_download = "Shift+D"
    bulk_scroll_keys = ("PageDown", "End")

    partial_suffixes = (".crdownload",)

    def __init__(self, item_id_rule=None):
        self._item_id_rule = item_id_rule or PathSegmentRule(4)

    def is_signed_in(self, location: str) -> bool:
        return location == self.landing_url

    def is_item_view(self, location: str) -> bool:
        return location != self.landing_url and self.item_id(location) is not None

    def item_id(self, location: str) -> str | None:
        return self._item_id_rule(location)
