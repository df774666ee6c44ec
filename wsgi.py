from compass_mfa import create_app

app = create_app()
