"""Sample analysis-service payloads for testing the scan pipeline.

Shapes follow what the extraction request asks for: camelCase keys, prices
as display strings plus numbers, scores computed by the model.
"""

BENCHMARK_ANSWER = "1000"

VALID_AD_URLS = [
    "https://www.kleinanzeigen.de/s-anzeige/iphone-15-pro-256gb-titan/2876543210-173-4567",
    "https://www.kleinanzeigen.de/s-anzeige/iphone-15-pro-128gb/2876543211-173-1234",
    "https://www.kleinanzeigen.de/s-anzeige/iphone-15-pro-akku-96/2876543212-173-9876",
]

INVALID_AD_URL = "https://www.kleinanzeigen.de/nope"

SAMPLE_EXTRACTION = {
    "listings": [
        {
            "title": "iPhone 15 Pro 256GB Titan Natur",
            "price": "800 € VB",
            "priceNum": 800,
            "location": "10115 Berlin",
            "url": VALID_AD_URLS[0],
            "storageGb": "256",
            "batteryHealth": "91%",
            "isVb": True,
            "riskScore": 15,
            "profitPotential": 100,
            "sellerInsights": "Account seit 2016, 40 Bewertungen",
            "dealScore": "Great",
            "agentComment": "Clean seller history, battery above 90%.",
            "arbitragePotential": "High",
        },
        {
            "title": "iPhone 15 Pro 128GB Schwarz",
            "price": "900 €",
            "priceNum": 900,
            "location": "80331 München",
            "url": VALID_AD_URLS[1],
            "storageGb": "128",
            "batteryHealth": "88%",
            "isVb": False,
            "riskScore": 35,
            "profitPotential": 0,
            "dealScore": "fair",
            "agentComment": "Festpreis, at market.",
        },
        {
            "title": "iPhone 15 Pro 128GB wie neu!!!",
            "price": "500 €",
            "priceNum": 500,
            "location": "Hamburg",
            "url": INVALID_AD_URL,
            "riskScore": 92,
            "profitPotential": 400,
            "dealScore": "Great",
            "agentComment": "Too cheap, template text.",
        },
        {
            "title": "iPhone 15 Pro 256GB Akku 96%",
            "price": "1.000 €",
            "priceNum": 1000,
            "location": "50667 Köln",
            "url": VALID_AD_URLS[2],
            "storageGb": "256",
            "batteryHealth": "96%",
            "isVb": True,
            "riskScore": 10,
            "profitPotential": -100,
            "dealScore": "Poor",
        },
    ],
    "marketTrend": "falling",
    "summary": "Prices for the 15 Pro are softening ahead of the autumn launch.",
}
