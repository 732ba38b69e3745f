# ilyvault

A terminal program that registers a single local account, confirmed by a
code sent to the user's e-mail address and protected by a master password.
The account is kept in a local SQLite database. The screens are in Russian
and are drawn with ANSI cursor positioning.

## Running

```
pip install .
ilyvault
ilyvault --db path/to/file.db
```

On start the program:

1. writes an information file named `(!README.RUS!)` into the current
   directory;
2. opens the database — `Data/passwords.db` under the current directory
   (the `Data` directory is created if needed), or the file given with
   `--db`;
3. prints the tables found in the database;
4. asks for the master password if an account exists, otherwise starts
   registration.

End of input or Ctrl+C ends the program. The command exits with status 1 if
the information file cannot be written or the database cannot be opened.

### Registration

1. Enter an e-mail address. An address that is already registered is
   refused. A six-digit code is generated, stored and mailed to the address.
2. Enter the code. There are three tries per code; each wrong try is counted
   in the database. A code older than 10 minutes is discarded. After three
   wrong tries the program starts over from the e-mail prompt, and the same
   address is refused until the code's 10 minutes have passed.
3. Enter the master password, then enter it again to confirm.

At any registration prompt, entering `1` returns to the welcome screen.

The master password must be at least 24 bytes long in UTF-8 and contain at
least one upper-case letter, one lower-case letter, one decimal digit and one
of these special characters:

```
=~`$%^!_-()[]&#@*?+/:"'.,\
```

Any other character (a space, for example) is rejected.

The password itself is not stored: only an Argon2id hash (3 passes, 64 MiB of
memory, 4 lanes, 32-byte output) and its random 16-byte salt, both hex
encoded.

### Login

When an account exists, the program asks for the master password up to three
times. A failed database lookup also uses up a try.

### E-mail settings

Codes are sent over SMTP with settings read from the environment by
`ilyvault.mailer.SmtpSettings.from_env`:

| Variable            | Meaning                      | Default             |
|---------------------|------------------------------|---------------------|
| `ILY_SMTP_USER`     | login name (required)        |                     |
| `ILY_SMTP_PASSWORD` | login password (required)    |                     |
| `ILY_SMTP_HOST`     | server                       | `smtp.gmail.com`    |
| `ILY_SMTP_PORT`     | port, 1–65535                | `587`               |
| `ILY_SMTP_FROM`     | sender address               | the login name      |

STARTTLS is used whenever the server offers it; without it, credentials are
only sent to `localhost`, `127.0.0.1` or `::1`. If the settings are missing or
sending fails, the program reports the error and asks for the e-mail again.

## What it does not do

After login or registration the main menu only shows a heading and waits for
Enter. The package does not store, encrypt or retrieve passwords for other
sites; it holds just the one account and its pending verification codes.

## Using it from Python

```python
from ilyvault.db import PasswordStore, UserAlreadyExistsError
from ilyvault.security import (
    PasswordPolicyError,
    generate_password_hash,
    generate_verification_code,
    validate_password,
)

password = "password"
try:
    validate_password(password)
except PasswordPolicyError as exc:
    print(exc)  # too short, missing character classes, ...

with PasswordStore("vault.db") as store:
    code = generate_verification_code()
    store.save_verification_code("user@example.com", code)
    record = store.get_verification_code("user@example.com")
    print(record.code, record.attempts, record.created_at)

    password_hash, salt = generate_password_hash(password)
    try:
        store.save_user("user@example.com", password_hash, salt)
    except UserAlreadyExistsError:
        pass

    print(store.validate_master_password(password))  # True
    print(store.table_names())
```

Modules:

- `ilyvault.security` — `hash_password`, `generate_password_hash`,
  `verify_password`, `validate_password` (raises `PasswordPolicyError`) and
  `generate_verification_code`.
- `ilyvault.db` — `PasswordStore`, `VerificationRecord`,
  `default_database_path`, `DatabaseError` and `UserAlreadyExistsError`.
- `ilyvault.mailer` — `SmtpSettings`, `compose_message` and
  `send_verification_email`.
- `ilyvault.terminal` — `Terminal`, writing positioned text and framed boxes
  and reading lines.
- `ilyvault.app` — `App`, which runs the screens and accepts its terminal,
  e-mail sender, sleep function and clock as arguments; `write_readme`; and
  `main`, the command's entry point.

## Tests

```
pip install .[test]
pytest
```