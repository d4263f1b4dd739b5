from actionlane.cli.app import app

app(prog_name="actionlane")
