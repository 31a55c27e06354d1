from app.config import settings
from app.services import r2_helper


class FakeS3:
    def __init__(self):
        self.deleted = []

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        return f"https://r2.example.com/{Params['Bucket']}/{Params['Key']}?expires={ExpiresIn}"

    def delete_object(self, Bucket, Key):
        self.deleted.append((Bucket, Key))


def _enable_storage(monkeypatch, client):
    monkeypatch.setattr(settings, "r2_account_id", "acct")
    monkeypatch.setattr(settings, "r2_bucket_name", "assets-bucket")
    monkeypatch.setattr(r2_helper, "get_s3_client", lambda: client)


def test_absolute_urls_pass_through(monkeypatch):
    _enable_storage(monkeypatch, FakeS3())
    assert r2_helper.to_download_url("https://cdn.example.com/file.zip") == "https://cdn.example.com/file.zip"
    assert r2_helper.to_download_url(None) is None


def test_storage_keys_are_presigned(monkeypatch):
    _enable_storage(monkeypatch, FakeS3())

    url = r2_helper.to_download_url("assets/kit_1.zip", expires=60)

    assert url == "https://r2.example.com/assets-bucket/assets/kit_1.zip?expires=60"


def test_keys_pass_through_when_storage_disabled(monkeypatch):
    monkeypatch.setattr(settings, "r2_account_id", None)
    assert r2_helper.to_download_url("assets/kit_1.zip") == "assets/kit_1.zip"


def test_delete_only_touches_storage_keys(monkeypatch):
    s3 = FakeS3()
    _enable_storage(monkeypatch, s3)

    r2_helper.delete_stored_file("https://cdn.example.com/file.zip")
    r2_helper.delete_stored_file("assets/kit_1.zip")

    assert s3.deleted == [("assets-bucket", "assets/kit_1.zip")]
