"""Instruction prompt sent with every runsheet chunk.

The mapping tables below are consumed by the model, not by this code base:
they are rendered into the prompt text and passed to the extraction call as
plain configuration.
"""

CSV_COLUMNS = [
    "Date",
    "Run Num",
    "Pick Up Time",
    "Customer",
    "Customer ID",
    "Pickup Address",
    "Dropoff Address",
    "Dropoff Time",
    "Comment",
    "Mileage",
]

CSV_HEADER = ",".join(f'"{col}"' for col in CSV_COLUMNS)

CITY_MAPPINGS = {
    "NORTH": "NORTH YORK",
    "SCARB": "SCARBOROUGH",
    "TOROT": "TORONTO",
    "MARKH": "MARKHAM",
    "EASTY": "EAST YORK",
    "ETOBI": "ETOBICOKE",
    "VAUGH": "VAUGHAN",
    "MISSI": "MISSISSAUGA",
    "PICKE": "PICKERING",
    "YORK": "TORONTO",
}

COMMENT_MAPPINGS = {
    "DNLU": "Do Not Leave Unattended",
    "MAND.ESC": "Mandatory Escort / Support Person Required",
    "COG": "Cognitive (disability)",
    "APT BLDG": "Apartment Building",
    "MSP": "Mandatory Support Person",
    "FRONT ENTR": "Front Entrance",
    "FRONT": "Front Entrance",
    "CHEMO": "Chemotherapy (medical condition)",
    "SUP. PER": "Support Person",
    "SEIZ": "Seizures (medical condition)",
    "MAIN ENT": "Main Entrance",
    "EPILEPSY": "Epilepsy (medical condition)",
    "CX": "Customer",
    "P/U": "Pickup",
    "PU": "Pickup",
    "D/O": "Dropoff",
    "DO": "Dropoff",
    "SPAC": "Support Person Card",
    "ADP": "A Day Program",
    "CANE": "CANE",
    "WALKER": "WALKER",
    "KF": "Folding Cane or Walker",
    "KNF": "Non-folding Cane or Walker",
    "WNF": "Walker non folding",
}


def _render_mapping(mapping):
    return ", ".join(f'"{key}": "{value}"' for key, value in mapping.items())


def build_runsheet_prompt(city_mappings=None, comment_mappings=None):
    """Render the extraction instructions with the given mapping tables."""
    city_mappings = CITY_MAPPINGS if city_mappings is None else city_mappings
    comment_mappings = COMMENT_MAPPINGS if comment_mappings is None else comment_mappings

    return f"""
    You are an expert data extraction and transformation tool. Analyse the provided PDF
    transportation runsheet and convert all relevant trip data into one clean CSV string.

    The CSV MUST have exactly these columns, in this order:
    {CSV_HEADER}

    ### Part 1: Core extraction

    1. "Date": find the main runsheet date (usually at the top of the page) and apply it to
       EVERY row. Format strictly as MM/DD/YYYY. A row date such as '02.10.25' must become
       10/02/2025, taking the year from the main document date.
    2. "Customer ID": the unique customer identifier ("ID", "Customer #", ...) next to the
       customer's name. Mandatory for every row with a "Customer".
    3. "Dropoff Time": the dropoff time of each trip, either in its own column or near the
       dropoff address.
    4. "Mileage" (shared rides are CRITICAL):
       - Rows with the same "Run Num" form one shared ride.
       - The ride's mileage is usually printed once; copy that value IDENTICALLY into every row
         of the run. Never split or divide it between passengers.
       - If the mileage is missing, blank or zero for a run, calculate the approximate driving
         mileage once and apply it to all rows of that run.
       - The value must always be a number.

    ### Part 2: Fill-down and addresses

    1. Fill-down for shared rides: when a row has the same "Run Num" as the row immediately
       before it and its "Pick Up Time" and/or "Pickup Address" is blank, copy BOTH the
       "Pick Up Time" AND the "Pickup Address" from the preceding row.
    2. "Pickup Address": keep only the street address and city. Anything printed after the
       city (intersections, notes) moves to "Comment". Replace every city abbreviation using
       the City Mappings; no abbreviations may remain.
       Example: "70 LEONARD AVE, TOROT" becomes "70 LEONARD AVE, TORONTO".
    3. "Dropoff Address": mandatory whenever the document has it. Process it exactly like the
       pickup address. Example: "5 PIPPIN PL, ETOBI" becomes "5 PIPPIN PL, ETOBICOKE".

    ### Part 3: "Comment" column

    1. Start with `Pickup Comments: `, append text moved from the pickup address, then
       ` / Passengers: [value of the Nb. column]`, then
       ` / Device: [full text of the Dev. column using the Comment Mappings]`.
    2. Append ` / Dropoff Comments: `, the text moved from the dropoff address and the full
       content of the "Drop_Off_Comments" column.
    3. Clean the whole string: replace newlines with ' / ', remove metadata headers such as
       '* Building / Suite / Charac. / Note:', replace ' Yes / ' with a single space, then
       apply every Comment Mappings replacement.

    City Mappings (pickup and dropoff addresses):
    {_render_mapping(city_mappings)}

    Comment Mappings:
    {_render_mapping(comment_mappings)}

    ### Part 4: Final validation

    Before answering, re-check every row:
    - every row with a "Customer" has a "Customer ID", a "Dropoff Address", a "Dropoff Time"
      and a numeric "Mileage";
    - all rows sharing a "Run Num" have the identical "Mileage";
    - no city abbreviation from the City Mappings remains in either address column.

    ### Output rules

    - Respond with ONLY the CSV header row followed by the data rows.
    - No explanations, no introductory text, no markdown fences such as ```csv.
    - Leave a value empty if it cannot be found for a row.
    """


RUNSHEET_PROMPT = build_runsheet_prompt()
