import io
import sys
from datetime import datetime, timedelta, timezone

import pytest

from ilyvault.app import App, ReturnToStart, main, write_readme
from ilyvault.db import PasswordStore
from ilyvault.security import generate_password_hash
from ilyvault.terminal import Terminal

WORD = "password"
STRONG = "-".join([WORD.capitalize(), WORD, WORD.upper()]) + "1"
EMAIL = "user@example.com"


class ScriptedInput:
    def __init__(self, lines):
        self._lines = list(lines)

    def readline(self):
        if not self._lines:
            return ""
        item = self._lines.pop(0)
        return (item() if callable(item) else item) + "\n"


class Harness:
    def __init__(self, store, lines, send=None, clock=None):
        self.out = io.StringIO()
        self.sleeps = []
        self.sent = []
        terminal = Terminal(ScriptedInput(lines), self.out)

        def default_send(recipient, code):
            self.sent.append((recipient, code))

        self.app = App(
            store,
            terminal,
            send if send is not None else default_send,
            self.sleeps.append,
            clock,
        )

    @property
    def output(self):
        return self.out.getvalue()

    def last_code(self):
        return self.sent[-1][1]


@pytest.fixture
def store(tmp_path):
    with PasswordStore(tmp_path / "passwords.db") as opened:
        yield opened


def test_register_email_success(store):
    h = None
    h = Harness(store, [EMAIL, lambda: h.last_code()])
    assert h.app.register_email() == EMAIL
    assert h.sent[0][0] == EMAIL
    assert len(h.sent[0][1]) == 6 and h.sent[0][1].isdigit()
    assert store.get_verification_code(EMAIL) is None
    assert "Регистрация Email окончена" in h.output


def test_exit_word_at_email_returns_to_start(store):
    h = Harness(store, ["1"])
    with pytest.raises(ReturnToStart):
        h.app.register_email()
    assert h.sent == []


def test_registered_email_is_rejected(store):
    password_hash, salt = generate_password_hash(STRONG)
    store.save_user(EMAIL, password_hash, salt)
    h = Harness(store, [EMAIL, "1"])
    with pytest.raises(ReturnToStart):
        h.app.register_email()
    assert "Этот email уже зарегистрирован!" in h.output
    assert h.sleeps == [2]
    assert h.sent == []


def test_three_wrong_codes_restart(store):
    h = Harness(store, [EMAIL, "x", "x", "x", "1"])
    with pytest.raises(ReturnToStart):
        h.app.register_email()
    assert "Неверный код! Осталось попыток: 2" in h.output
    assert "Неверный код! Осталось попыток: 0" in h.output
    assert "Превышено количество попыток. Начинаем заново." in h.output
    assert store.get_verification_code(EMAIL).attempts == 3


def test_send_failure_is_reported(store):
    def failing(recipient, code):
        raise OSError("no route")

    h = Harness(store, [EMAIL, "1"], send=failing)
    with pytest.raises(ReturnToStart):
        h.app.register_email()
    assert "Ошибка отправки письма! Проверьте email" in h.output


def test_expired_code_is_deleted(store):
    def later():
        return datetime.now(timezone.utc) + timedelta(minutes=11)

    h = None
    h = Harness(store, [EMAIL, lambda: h.last_code(), "1"], clock=later)
    with pytest.raises(ReturnToStart):
        h.app.register_email()
    assert "Код устарел!" in h.output
    assert store.get_verification_code(EMAIL) is None


def test_locked_out_email_must_wait(store):
    store.save_verification_code(EMAIL, "123456")
    for _ in range(3):
        store.increment_attempts(EMAIL)
    h = Harness(store, [EMAIL, "1"])
    with pytest.raises(ReturnToStart):
        h.app.register_email()
    assert "Превышены попытки! Ждите" in h.output
    assert h.sent == []


def test_register_password_saves_account(store):
    h = Harness(store, ["short", STRONG, "mismatch", STRONG, ""])
    h.app.register_password(EMAIL)
    assert store.user_exists(EMAIL) is True
    assert store.validate_master_password(STRONG) is True
    assert "Пароли не совпадают!" in h.output
    assert "Ошибка: пароль должен быть не короче 24 символов" in h.output
    assert 3 in h.sleeps
    assert "Запуск меню" in h.output


def test_register_password_exit_word(store):
    h = Harness(store, ["1"])
    with pytest.raises(ReturnToStart):
        h.app.register_password(EMAIL)
    assert store.user_exists(EMAIL) is False


def test_login_success_after_wrong_attempt(store):
    password_hash, salt = generate_password_hash(STRONG)
    store.save_user(EMAIL, password_hash, salt)
    h = Harness(store, ["wrong", STRONG, ""])
    assert h.app.login() is True
    assert "Неверный пароль! Осталось попыток: 2" in h.output
    assert "Вход выполнен успешно" in h.output


def test_login_fails_after_three_attempts(store):
    password_hash, salt = generate_password_hash(STRONG)
    store.save_user(EMAIL, password_hash, salt)
    h = Harness(store, ["a", "b", "c", ""])
    assert h.app.login() is False
    assert "!Превышено количество попыток!" in h.output
    assert "Вход выполнен успешно" not in h.output


def test_check_auth(store):
    h = Harness(store, [])
    assert h.app.check_auth() is False
    password_hash, salt = generate_password_hash(STRONG)
    store.save_user(EMAIL, password_hash, salt)
    assert h.app.check_auth() is True
    store.close()
    assert h.app.check_auth() is False
    assert "Ошибка проверки авторизации" in h.output


def test_auth_flow_goes_to_login_when_registered(store):
    password_hash, salt = generate_password_hash(STRONG)
    store.save_user(EMAIL, password_hash, salt)
    h = Harness(store, [STRONG, ""])
    h.app.auth_flow()
    assert "Вход выполнен успешно" in h.output


def test_welcome_returns_to_start_on_exit_word(store):
    h = Harness(store, ["", "1"])
    with pytest.raises(EOFError):
        h.app.welcome()
    assert h.output.count("Добро пожаловать в ILY") == 2


def test_welcome_full_registration(store):
    h = None
    h = Harness(store, ["", EMAIL, lambda: h.last_code(), STRONG, STRONG, ""])
    h.app.welcome()
    assert store.user_exists(EMAIL) is True
    assert store.first_user_email() == EMAIL


def test_run_lists_tables(store):
    h = Harness(store, [])
    with pytest.raises(EOFError):
        h.app.run()
    assert "- users" in h.output
    assert "- verification_codes" in h.output


def test_write_readme(tmp_path):
    target = write_readme(tmp_path / "readme.txt")
    text = target.read_text(encoding="utf-8")
    assert text.startswith(" !Добро пожаловать!")
    assert "[1] О данном ПО?" in text


def test_main_creates_files(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "stdin", io.StringIO(""))
    monkeypatch.setattr(sys, "stdout", io.StringIO())
    assert main([]) == 0
    assert (tmp_path / "Data" / "passwords.db").exists()
    assert (tmp_path / "(!README.RUS!)").exists()