from webaudit.workflows.doctor import build_doctor_report, format_doctor_report


def _check(report, name):
    return next(check for check in report["checks"] if check["name"] == name)


def test_doctor_reports_parser_and_config(monkeypatch, tmp_path) -> None:
    for name in ("WEBAUDIT_TIMEOUT_MS", "WEBAUDIT_MAX_CONCURRENCY", "WEBAUDIT_VERBOSE"):
        monkeypatch.delenv(name, raising=False)

    report = build_doctor_report(env_path=tmp_path / ".env")

    assert _check(report, "lxml")["status"] == "ok"
    assert _check(report, "config")["status"] == "ok"
    assert _check(report, ".env")["status"] == "missing"
    assert report["ok"] is True


def test_doctor_flags_unparseable_settings(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("WEBAUDIT_TIMEOUT_MS", "soon")
    monkeypatch.setenv("WEBAUDIT_VERBOSE", "maybe")
    env_file = tmp_path / ".env"
    env_file.write_text("WEBAUDIT_MAX_DEPTH=2\n", encoding="utf-8")

    report = build_doctor_report(env_path=env_file)
    text = format_doctor_report(report)

    assert report["ok"] is False
    assert _check(report, "WEBAUDIT_TIMEOUT_MS")["status"] == "missing"
    assert _check(report, "WEBAUDIT_VERBOSE")["status"] == "missing"
    assert _check(report, ".env")["status"] == "ok"
    assert text.startswith("webaudit doctor")
    assert "WEBAUDIT_TIMEOUT_MS: missing (soon)" in text
