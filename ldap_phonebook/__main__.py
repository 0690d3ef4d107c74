from ldap_phonebook.cli import app

app(prog_name="ldap-phonebook")
