"""The interactive console flow: registration, e-mail verification and login."""

from __future__ import annotations

import argparse
import os
import sys
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from pathlib import Path

from .db import DatabaseError, PasswordStore, default_database_path
from .mailer import SmtpSettings, send_verification_email
from .security import (
    PasswordPolicyError,
    generate_password_hash,
    generate_verification_code,
    validate_password,
)
from .terminal import Terminal

EXIT_WORD = "1"
MAX_CODE_ATTEMPTS = 3
MAX_LOGIN_ATTEMPTS = 3
CODE_LIFETIME = timedelta(minutes=10)
README_NAME = "(!README.RUS!)"

_README_LINES = (
    " !Добро пожаловать! Это подробная инструкция и информация для пользователя! ",
    " [1] О данном ПО? ",
    "->Данное ПО создавалось для вашего личного использования.",
    "->Хранилище данных развертывается прямо на вашем ПК на базе SQLite.",
    "->Никто не следит за вашими данными и не имеет к ним доступа, кроме вас.",
    "->Пароли в базе данных хранятся только в виде стойких хешей.",
    "->Кроме вашего email, нужного для двухфакторной аутентификации, посторонние ничего не увидят.",
    " [2] Для чего создавалось это ПО? ",
    "->Простые пароли (дата рождения, имя питомца, родной город) подбираются за минуты.",
    "->Многие используют один пароль везде, и утечка одного открывает доступ ко всем.",
    "->Зарегистрируйтесь, указав email, и придумайте МАКСИМАЛЬНО СЛОЖНЫЙ мастер-пароль.",
    "->Запишите его или запомните и никому не сообщайте.",
    "->Мастер-пароль подтверждает, что это именно вы, при каждом входе в программу.",
    "",
)


class ReturnToStart(Exception):
    """Raised when the user enters the exit word to go back to the welcome screen."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _send_with_env_settings(recipient: str, code: str) -> None:
    send_verification_email(SmtpSettings.from_env(), recipient, code)


class App:
    """Drives the screens of the program over a :class:`Terminal`."""

    def __init__(
        self,
        store: PasswordStore,
        terminal: Terminal | None = None,
        send_email: Callable[[str, str], None] | None = None,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.terminal = terminal if terminal is not None else Terminal()
        self.send_email = send_email if send_email is not None else _send_with_env_settings
        self.sleep = sleep if sleep is not None else time.sleep
        self.clock = clock if clock is not None else _utc_now

    # -- shared pieces -------------------------------------------------

    def _ask(self) -> str:
        answer = self.terminal.read_line()
        if answer == EXIT_WORD:
            raise ReturnToStart()
        return answer

    def _wait_for_enter(self) -> None:
        try:
            self.terminal.read_line()
        except EOFError:
            pass

    def _exit_hint(self) -> None:
        self.terminal.draw_box(29, 2, "  Введите 1 для выхода  ")

    def _notice(self, x: int, y: int, text: str, seconds: float) -> None:
        self.terminal.draw_box(x, y, text)
        self.sleep(seconds)

    def _greeting(self) -> None:
        term = self.terminal
        term.write_at(28, 4, "Добро пожаловать в ILY")
        term.write_at(8, 5, "!Просьба прочитать файл (README) созданный в главной папке main!")

    # -- screens -------------------------------------------------------

    def welcome(self) -> None:
        """Show the welcome screen and register a new account.

        Entering the exit word anywhere during registration comes back here.
        Returns once an account has been registered.
        """
        term = self.terminal
        term.clear()
        while True:
            self._greeting()
            term.draw_box(27, 7, " Нажмите любую кнопку ")
            term.draw_box(5, 14, "    Для Регистрации     ")
            term.write_at(32, 15, "-> ")
            term.read_line()
            try:
                email = self.register_email()
                self.register_password(email)
            except ReturnToStart:
                term.clear()
                continue
            return

    def register_email(self) -> str:
        """Ask for an e-mail address, send it a code and check the code; return the address."""
        term = self.terminal
        term.clear()
        while True:
            self._exit_hint()
            term.draw_box(9, 6, "   Введите ваш email:   ")
            term.write_at(36, 7, "-> ")
            email = self._ask()

            try:
                registered = self.store.user_exists(email)
            except DatabaseError:
                registered = False
            if registered:
                self._notice(9, 13, "  Этот email уже зарегистрирован!  ", 2)
                term.clear()
                continue

            try:
                pending = self.store.get_verification_code(email)
            except DatabaseError:
                pending = None
            if pending is not None and pending.attempts >= MAX_CODE_ATTEMPTS:
                elapsed = self.clock() - pending.created_at
                if elapsed < CODE_LIFETIME:
                    minutes = (CODE_LIFETIME - elapsed).total_seconds() / 60
                    term.write_at(9, 14, f" Превышены попытки! Ждите {minutes:.0f} минут ")
                    self.sleep(2)
                    term.clear()
                    continue
                self.store.delete_verification_code(email)

            code = generate_verification_code()
            try:
                self.store.save_verification_code(email, code)
            except DatabaseError:
                self._notice(9, 13, "  Ошибка сохранения кода! Попробуйте снова  ", 2)
                term.clear()
                continue

            try:
                self.send_email(email, code)
            except (OSError, ValueError):
                self._notice(9, 13, "  Ошибка отправки письма! Проверьте email  ", 2)
                term.clear()
                continue

            if self._check_code(email):
                return email

            term.clear()
            self._notice(13, 9, "  Превышено количество попыток. Начинаем заново.  ", 2)
            term.clear()

    def _check_code(self, email: str) -> bool:
        term = self.terminal
        for remaining in range(MAX_CODE_ATTEMPTS, 0, -1):
            term.clear()
            term.draw_box(9, 13, "  Письмо с кодом отправлено! Проверьте почту(СПАМ)  ")
            self._exit_hint()
            term.draw_box(9, 6, " Введите код из письма: ")
            term.write_at(36, 7, "-> ")
            entered = self._ask()

            try:
                record = self.store.get_verification_code(email)
            except DatabaseError:
                record = None
            if record is None:
                self._notice(9, 17, "  Ошибка проверки кода! Попробуйте снова.  ", 2)
                return False

            if self.clock() - record.created_at > CODE_LIFETIME:
                term.draw_box(9, 17, "  Код устарел! Запросите новый код.  ")
                self.store.delete_verification_code(email)
                self.sleep(2)
                return False

            if record.attempts >= MAX_CODE_ATTEMPTS:
                term.draw_box(9, 17, "  Превышены попытки! Запросите новый код.  ")
                self.store.delete_verification_code(email)
                self.sleep(2)
                return False

            if entered != record.code:
                self.store.increment_attempts(email)
                self._notice(
                    19, 2, f"  Неверный код! Осталось попыток: {remaining - 1}  ", 1
                )
                continue

            self.store.delete_verification_code(email)
            self._notice(24, 10, "  Регистрация Email окончена  ", 2)
            term.clear()
            return True
        return False

    def _password_form(self) -> None:
        term = self.terminal
        self._exit_hint()
        term.draw_box(
            3, 19, " Пароль должен иметь 24 символа, специальный знак, латинские буквы (A,a) "
        )
        term.draw_box(9, 6, "     Введите ILYpassword:     ")
        term.draw_box(9, 10, "   Подтвердите ILYpassword:   ")

    def register_password(self, email: str) -> None:
        """Ask for the master password twice and save the account for ``email``."""
        term = self.terminal
        while True:
            self._password_form()
            term.write_at(42, 11, "-> ")
            term.write_at(42, 7, "-> ")
            master = self._ask()
            try:
                validate_password(master)
            except PasswordPolicyError as exc:
                term.write_at(9, 15, f"Ошибка: {exc}")
                self.sleep(3)
                term.clear()
                continue
            break

        while True:
            self._password_form()
            term.write_at(42, 7, f"-> {master}")
            term.write_at(42, 11, "-> ")
            confirmation = self._ask()
            if confirmation != master:
                self._notice(9, 14, "  Пароли не совпадают!  ", 2)
                term.clear()
                continue

            password_hash, salt = generate_password_hash(master)
            try:
                self.store.save_user(email, password_hash, salt)
            except DatabaseError:
                term.write_at(9, 20, "Ошибка сохранения данных!")
                self.sleep(2)
                continue

            term.clear()
            self._notice(24, 10, "     Регистрация окончена     ", 2)
            term.clear()
            self.menu()
            return

    def login(self) -> bool:
        """Ask for the master password up to three times; return whether it was accepted."""
        term = self.terminal
        term.clear()
        for remaining in range(MAX_LOGIN_ATTEMPTS, 0, -1):
            self._greeting()
            term.draw_box(5, 11, "Введите пароль для входа")
            term.write_at(32, 12, "-> ")
            entered = term.read_line()

            try:
                valid = self.store.validate_master_password(entered)
            except DatabaseError:
                term.write_at(9, 10, "Ошибка проверки пароля")
                self.sleep(2)
                continue

            if valid:
                term.clear()
                self._notice(24, 10, "     Вход выполнен успешно    ", 2)
                term.clear()
                self.menu()
                return True

            self._notice(
                9, 16, f"  Неверный пароль! Осталось попыток: {remaining - 1}  ", 2
            )
            term.clear()

        term.draw_box(24, 9, "!Превышено количество попыток!")
        self._wait_for_enter()
        self.sleep(2)
        return False

    def menu(self) -> None:
        """Show the main menu and wait for Enter."""
        self.terminal.clear()
        self.terminal.write("Запуск меню\n")
        self._wait_for_enter()

    def check_auth(self) -> bool:
        """Tell whether an account has been registered."""
        try:
            return self.store.user_exists_by_id(1)
        except DatabaseError as exc:
            self.terminal.write(f"Ошибка проверки авторизации: {exc}\n")
            return False

    def auth_flow(self) -> None:
        """Log in when an account exists, otherwise start registration."""
        if self.check_auth():
            self.login()
        else:
            self.welcome()

    def run(self) -> None:
        """List the database tables, then start the authentication flow."""
        term = self.terminal
        term.write("\n[Проверка подключения к БД]\n")
        try:
            names = self.store.table_names()
        except DatabaseError as exc:
            term.write(f"Ошибка проверки таблиц: {exc}\n")
        else:
            term.write("Существующие таблицы:\n")
            for name in names:
                term.write(f"- {name}\n")
        self.auth_flow()


def write_readme(path: str | os.PathLike[str] = README_NAME) -> Path:
    """Write the user instructions file and return its path."""
    target = Path(path)
    target.write_text(" \n".join(_README_LINES), encoding="utf-8")
    return target


def main(argv: Sequence[str] | None = None) -> int:
    """Run the program; return the process exit status."""
    parser = argparse.ArgumentParser(prog="ilyvault", description="Хранилище паролей ILY")
    parser.add_argument("--db", help="путь к файлу базы данных")
    args = parser.parse_args(argv)

    try:
        write_readme()
    except OSError as exc:
        print("Unable to create file:", exc)
        return 1

    try:
        db_path = Path(args.db) if args.db else default_database_path()
        print(f"База данных будет создана по пути: {db_path}")
        store = PasswordStore(db_path)
    except DatabaseError as exc:
        print(f"FATAL: {exc}")
        return 1

    with store:
        app = App(store, Terminal(sys.stdin, sys.stdout))
        try:
            app.run()
        except (EOFError, KeyboardInterrupt):
            pass
    return 0