# lambda_function.py
from mangum import Mangum

from souldeep.main import create_app

# Configuration errors surface here, when the Lambda container starts
app = create_app()

# Create Mangum handler for Lambda
handler = Mangum(app)
