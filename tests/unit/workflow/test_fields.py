"""Tests for the sparse field patch."""

from catalog.core.workflow.fields import DestinationChangeFields, GalleryItem


class TestPresence:

    def test_unset_fields_are_not_serialised(self):
        fields = DestinationChangeFields(name="Old Town")
        assert fields.to_payload() == {"name": "Old Town"}
        assert fields.is_set("name")
        assert not fields.is_set("city")

    def test_explicit_none_is_kept(self):
        fields = DestinationChangeFields(contact=None)
        assert fields.is_set("contact")
        assert fields.to_payload() == {"contact": None}

    def test_presence_survives_payload_round_trip(self):
        payload = DestinationChangeFields(description="", latitude=1.5).to_payload()
        restored = DestinationChangeFields.from_payload(payload)
        assert restored.present() == {"description": "", "latitude": 1.5}

    def test_from_empty_payload(self):
        assert DestinationChangeFields.from_payload(None).present() == {}

    def test_unknown_keys_ignored(self):
        fields = DestinationChangeFields.from_payload({"name": "x", "bogus": 1})
        assert fields.present() == {"name": "x"}

    def test_hero_fields_are_upload_id_and_url(self):
        fields = DestinationChangeFields.from_payload(
            {"hero_image_upload_id": "k", "hero_image_url": "u", "published_hero_image": "p"}
        )
        assert fields.present() == {"hero_image_upload_id": "k", "hero_image_url": "u"}


class TestHelpers:

    def test_normalized_trims_and_keeps_presence(self):
        fields = DestinationChangeFields(
            name="  Old Town ",
            gallery=[GalleryItem(url=" http://a ", caption="  ")],
        ).normalized()
        assert fields.name == "Old Town"
        assert fields.gallery[0].url == "http://a"
        assert fields.gallery[0].caption is None
        assert not fields.is_set("city")

    def test_with_updates_marks_fields_present(self):
        fields = DestinationChangeFields(name="Old Town").with_updates(
            gallery=[GalleryItem(url="http://a", ordering=0)],
            hero_image_url="http://hero",
        )
        assert fields.is_set("gallery")
        assert fields.is_set("hero_image_url")
        assert fields.gallery[0].url == "http://a"
        assert fields.name == "Old Town"

    def test_wants_hard_delete(self):
        assert DestinationChangeFields(hard_delete=True).wants_hard_delete
        assert not DestinationChangeFields().wants_hard_delete
