import streamlit as st
import os
import time
import logging
import asyncio
import io
import pandas as pd

from src.config import load_settings
from src.csv_processing import csv_file_name
from src.errors import ConversionError
from src.pdf_extraction import convert_pdf_to_csv

# Create logs directory if it doesn't exist
if not os.path.exists("logs"):
    os.makedirs("logs")

# Configure logging
log_file = os.path.join("logs", "app.log")
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_file),
        logging.StreamHandler()  # This will continue to show logs in console
    ]
)

logging.info("Starting Runsheet Converter application")

# Page configuration
st.set_page_config(
    page_title="PDF Runsheet Converter",
    layout="centered"
)

# Initialize session state variables if they don't exist
if 'csv_data' not in st.session_state:
    st.session_state.csv_data = None
if 'error' not in st.session_state:
    st.session_state.error = None
if 'source_file' not in st.session_state:
    st.session_state.source_file = None

# Settings are validated before any upload so a missing key is reported immediately
try:
    settings = load_settings()
except ConversionError as e:
    st.error(str(e) + " Please check your .env file.")
    st.stop()

st.markdown("<h1 style='text-align: center;'>PDF Runsheet Converter</h1>", unsafe_allow_html=True)
st.markdown(
    "<p style='text-align: center; font-size: 16px;'>Automatically convert your transportation PDF runsheets "
    "to perfectly formatted CSV files.</p>",
    unsafe_allow_html=True,
)

uploaded_file = st.file_uploader("Choose a PDF runsheet", type="pdf", accept_multiple_files=False)

# A different upload invalidates the previous result
current_file = uploaded_file.name if uploaded_file is not None else None
if current_file != st.session_state.source_file:
    st.session_state.source_file = current_file
    st.session_state.csv_data = None
    st.session_state.error = None

col1, col2 = st.columns(2)
with col1:
    convert_button = st.button("Convert to CSV", disabled=uploaded_file is None)

if convert_button and uploaded_file is not None:
    st.session_state.csv_data = None
    st.session_state.error = None
    progress_placeholder = st.empty()
    progress_placeholder.info("Initializing...")

    start_time = time.time()
    logging.info(f"Converting uploaded file: {uploaded_file.name}")
    with st.spinner("Processing..."):
        try:
            st.session_state.csv_data = asyncio.run(
                convert_pdf_to_csv(
                    uploaded_file.getvalue(),
                    on_progress=progress_placeholder.info,
                    settings=settings,
                    mime_type=uploaded_file.type or "application/pdf",
                )
            )
            logging.info(f"Conversion completed in {time.time() - start_time:.2f} seconds")
        except ConversionError as e:
            st.session_state.error = str(e)
        except Exception:
            logging.exception("Unexpected error during conversion")
            st.session_state.error = "An unknown error occurred during conversion."
        finally:
            progress_placeholder.empty()

with col2:
    st.download_button(
        label="Download CSV",
        data=(st.session_state.csv_data or "").encode("utf-8"),
        file_name=csv_file_name(st.session_state.source_file),
        mime="text/csv",
        disabled=not st.session_state.csv_data,
    )

if st.session_state.error:
    st.error(f"**Conversion Failed**\n\n{st.session_state.error}")
elif st.session_state.csv_data:
    st.success("**Conversion Successful!** Your CSV file is ready for download.")

    show_preview = st.checkbox("Show data preview", value=True)
    if show_preview:
        try:
            preview_df = pd.read_csv(
                io.StringIO(st.session_state.csv_data),
                dtype=str,
                keep_default_na=False,
                on_bad_lines="skip",
            )
            preview_rows = 20
            st.dataframe(preview_df.head(preview_rows), width='stretch')
            if len(preview_df) > preview_rows:
                st.info(f"Showing first {preview_rows} rows out of {len(preview_df)} total rows. Download the file to see all data.")
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            logging.warning(f"Could not build preview: {e}")
            st.info("Preview is not available for this file. Download the CSV to see all data.")

st.markdown("<p style='text-align: center; color: grey; font-size: 12px;'>Powered by OpenAI</p>", unsafe_allow_html=True)
