from teams_notify.cli import cli

if __name__ == "__main__":
    cli()
