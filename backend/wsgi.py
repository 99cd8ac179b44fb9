from salestock import create_app

app = create_app()
