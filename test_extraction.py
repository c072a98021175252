"""
Document Extraction Test

Validates the rule-table extractor on every document family:
1. FatturaPA XML invoice end to end (issuer, lines, transport details)
2. Rendered invoice text with the quantity fallback chain
3. Loading note and e-DAS text
4. Structured JSON intake (camelCase keys, invalid lines dropped)
5. Idempotence and non-negative numbers
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError


INVOICE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<p:FatturaElettronica versione="FPR12" xmlns:p="http://ivaservizi.agenziaentrate.gov.it/docs/xsd/fatture/v1.2">
  <FatturaElettronicaHeader>
    <CedentePrestatore>
      <DatiAnagrafici>
        <IdFiscaleIVA><IdPaese>IT</IdPaese><IdCodice>00905811006</IdCodice></IdFiscaleIVA>
        <Anagrafica><Denominazione>ENI S.p.A.</Denominazione></Anagrafica>
      </DatiAnagrafici>
      <Sede>
        <Indirizzo>Piazzale Enrico Mattei</Indirizzo><NumeroCivico>1</NumeroCivico>
        <CAP>00144</CAP><Comune>Roma</Comune><Provincia>RM</Provincia><Nazione>IT</Nazione>
      </Sede>
    </CedentePrestatore>
    <CessionarioCommittente>
      <DatiAnagrafici>
        <IdFiscaleIVA><IdPaese>IT</IdPaese><IdCodice>01234567890</IdCodice></IdFiscaleIVA>
        <Anagrafica><Nome>Mario</Nome><Cognome>Rossi</Cognome></Anagrafica>
      </DatiAnagrafici>
      <Sede>
        <Indirizzo>Via Appia</Indirizzo><NumeroCivico>100</NumeroCivico>
        <CAP>04100</CAP><Comune>Latina</Comune><Provincia>LT</Provincia><Nazione>IT</Nazione>
      </Sede>
    </CessionarioCommittente>
  </FatturaElettronicaHeader>
  <FatturaElettronicaBody>
    <DatiGenerali>
      <DatiGeneraliDocumento>
        <TipoDocumento>TD01</TipoDocumento>
        <Divisa>EUR</Divisa>
        <Data>2025-01-15</Data>
        <Numero>FT-2025-0042</Numero>
        <ImportoTotaleDocumento>17651.57</ImportoTotaleDocumento>
        <Causale>FORNITURA GASOLIO</Causale>
      </DatiGeneraliDocumento>
      <DatiDDT><NumeroDDT>DDT-778</NumeroDDT><DataDDT>2025-01-15</DataDDT></DatiDDT>
    </DatiGenerali>
    <DatiBeniServizi>
      <DettaglioLinee>
        <NumeroLinea>1</NumeroLinea>
        <CodiceArticolo><CodiceTipo>INTERNO</CodiceTipo><CodiceValore>GA10</CodiceValore></CodiceArticolo>
        <Descrizione>GASOLIO AUTOTRAZIONE 10PPM</Descrizione>
        <Quantita>15230.00</Quantita>
        <UnitaMisura>LITRI</UnitaMisura>
        <PrezzoUnitario>0.95000</PrezzoUnitario>
        <PrezzoTotale>14468.50</PrezzoTotale>
        <AliquotaIVA>22.00</AliquotaIVA>
        <AltriDatiGestionali>
          <TipoDato>DAS</TipoDato>
          <RiferimentoTesto>25ITRMA00012345678</RiferimentoTesto>
        </AltriDatiGestionali>
      </DettaglioLinee>
      <DettaglioLinee>
        <NumeroLinea>2</NumeroLinea>
        <Descrizione>CONTRIBUTO TRASPORTO</Descrizione>
        <PrezzoUnitario>0.00</PrezzoUnitario>
        <PrezzoTotale>0.00</PrezzoTotale>
        <AliquotaIVA>22.00</AliquotaIVA>
      </DettaglioLinee>
      <DatiRiepilogo>
        <AliquotaIVA>22.00</AliquotaIVA>
        <ImponibileImporto>14468.50</ImponibileImporto>
        <Imposta>3183.07</Imposta>
      </DatiRiepilogo>
    </DatiBeniServizi>
    <DatiPagamento>
      <CondizioniPagamento>TP02</CondizioniPagamento>
      <DettaglioPagamento>
        <ModalitaPagamento>MP05</ModalitaPagamento>
        <DataScadenzaPagamento>2025-02-14</DataScadenzaPagamento>
        <ImportoPagamento>17651.57</ImportoPagamento>
      </DettaglioPagamento>
    </DatiPagamento>
  </FatturaElettronicaBody>
</p:FatturaElettronica>
"""


INVOICE_TEXT = """FATTURA ELETTRONICA
Cedente/prestatore (fornitore)
Identificativo fiscale ai fini IVA: IT00905811006
Denominazione: ENI S.p.A.
Indirizzo: Piazzale Enrico Mattei 1, 00144 Roma (RM)
Cessionario/committente (cliente)
Identificativo fiscale ai fini IVA: IT01234567890
Denominazione: Rossi Petroli S.r.l.
Indirizzo: Via Appia 100, 04100 Latina (LT)
Tipologia documento: TD01 fattura
Numero documento: FT-2025-0042
Data documento: 15/01/2025
Causale: FORNITURA GASOLIO
DAS n. 25ITRMA00012345678
Linea 1
Codice articolo: GA10
Descrizione: GASOLIO AUTOTRAZIONE 10PPM
Quantità: 15.230,00 LITRI
Prezzo unitario: 0,95000
Prezzo totale: 14.468,50
Aliquota IVA: 22,00
Totale imponibile: 14.468,50
Totale imposta: 3.183,07
Totale documento: 17.651,57
Modalità pagamento: MP05 bonifico
Data scadenza: 14/02/2025
"""


LOADING_NOTE = """NOTA DI CARICO
Documento n. LN-2025-0042
Data di carico: 15/01/2025 08:30
Vettore: TRASPORTI ROSSI SRL
Deposito: ENI DEPOSITO ROMA
Destinazione: DISTRIBUTORE LATINA
Prodotto: GASOLIO AUTOTRAZIONE
Peso lordo (kg): 12.850
Peso netto (kg): 12.700
Quantità consegnata (L): 15.230
Densità a 15°C: 0,8350
Autista: MARIO BIANCHI
"""


FISCAL_MANIFEST = """DOCUMENTO AMMINISTRATIVO SEMPLIFICATO TELEMATICO (e-DAS)
e-DAS: 25ITRMA00012345678
Versione: 2
Numero di riferimento locale: RL-7781
Fattura n. FT-2025-0042 del 15/01/2025
Data registrazione: 15/01/2025 07:45
Data spedizione: 15/01/2025 08:30
Data scadenza: 16/01/2025 08:30
Codice deposito mittente: IT00RMA00123
Speditore
Denominazione: ENI S.p.A. Deposito di Roma
Indirizzo: Via di Malagrotta 1, Roma
Destinatario
Denominazione: Rossi Petroli S.r.l.
Indirizzo: Via Appia 100, Latina
Partita IVA: 01234567890
Trasporto
Modalità: Strada
Targa: AB123CD
Primo vettore: TRASPORTI ROSSI SRL
Conducente: MARIO BIANCHI
Prodotto
Codice NC: 27102011
Descrizione: GASOLIO AUTOTRAZIONE 10PPM
UN: 1202
Peso netto: 12.700
Volume a temperatura ambiente: 15.310
Volume a 15°C: 15.230
Densità a 15°C: 0,8350
"""


def _numbers(value):
    """Every Decimal anywhere in a dumped record."""
    if isinstance(value, Decimal):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from _numbers(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _numbers(item)


class TestInvoiceXml:
    """Test FatturaPA XML extraction."""

    def test_end_to_end(self):
        """Issuer, product, quantity and unit come through from the XML."""
        from extraction import extract_invoice_xml

        invoice = extract_invoice_xml(INVOICE_XML)

        assert invoice is not None
        assert "ENI" in invoice.issuer.name
        assert "GASOLIO" in invoice.transport_details.product_type
        assert invoice.transport_details.quantity == Decimal("15230")
        assert invoice.transport_details.unit_of_measure == "LITRI"
        assert invoice.transport_details.unit_price == Decimal("0.95")

    @pytest.mark.parametrize("payload", [
        ("\ufeff" + INVOICE_XML).encode("utf-8"),
        "\ufeff" + INVOICE_XML,
    ])
    def test_byte_order_mark(self, payload):
        """A leading UTF-8 byte-order mark does not hide the XML."""
        from extraction import extract_invoice

        invoice = extract_invoice(payload)

        assert invoice is not None
        assert invoice.invoice_number == "FT-2025-0042"
        assert invoice.transport_details.quantity == Decimal("15230")

    def test_header_fields(self):
        """Number, date, parties and amounts are read from their elements."""
        from extraction import extract_invoice_xml

        invoice = extract_invoice_xml(INVOICE_XML)

        assert invoice.invoice_number == "FT-2025-0042"
        assert invoice.date == "2025-01-15"
        assert invoice.issuer.tax_id == "IT00905811006"
        assert invoice.issuer.address == "Piazzale Enrico Mattei 1 00144 Roma RM"
        assert invoice.client.name == "Mario Rossi"
        assert invoice.client.tax_id == "IT01234567890"
        assert invoice.amounts.net == Decimal("14468.50")
        assert invoice.amounts.tax == Decimal("3183.07")
        assert invoice.amounts.total == Decimal("17651.57")
        assert invoice.description == "FORNITURA GASOLIO"
        assert invoice.payment_terms == "MP05"
        assert invoice.due_date == "2025-02-14"

    def test_das_reference_preferred_over_ddt(self):
        """The DAS number from AltriDatiGestionali is the shipment reference."""
        from extraction import extract_invoice_xml

        invoice = extract_invoice_xml(INVOICE_XML)

        assert invoice.transport_details.reference_number == "25ITRMA00012345678"

    def test_lines_without_quantity_are_dropped(self):
        """A detail line with no quantity is not kept."""
        from extraction import extract_invoice_xml

        invoice = extract_invoice_xml(INVOICE_XML)

        assert len(invoice.lines) == 1
        line = invoice.lines[0]
        assert line.line_number == 1
        assert line.product_code == "GA10"
        assert line.vat_rate == Decimal("22")
        assert line.extra_data == "25ITRMA00012345678"

    def test_delivery_address_from_client(self):
        """Without a delivery place the client address is used."""
        from extraction import extract_invoice_xml

        invoice = extract_invoice_xml(INVOICE_XML)

        assert invoice.transport_details.delivery_address == invoice.client.address

    def test_direction(self):
        """The trade direction is carried onto the record."""
        from core.models import TradeDirection
        from extraction import extract_invoice_xml

        assert extract_invoice_xml(INVOICE_XML).direction == TradeDirection.PURCHASE
        assert extract_invoice_xml(INVOICE_XML, TradeDirection.SALE).direction == TradeDirection.SALE

    def test_format_sniffing(self):
        """extract_invoice accepts XML bytes and plain text alike."""
        from extraction import extract_invoice

        from_xml = extract_invoice(INVOICE_XML.encode("utf-8"))
        from_text = extract_invoice(INVOICE_TEXT)

        assert from_xml.invoice_number == from_text.invoice_number == "FT-2025-0042"

    def test_missing_number_gives_none(self):
        """An XML invoice without its number is not emitted."""
        from extraction import extract_invoice_xml

        xml = INVOICE_XML.replace("<Numero>FT-2025-0042</Numero>", "")

        assert extract_invoice_xml(xml) is None


class TestInvoiceText:
    """Test invoice extraction from rendered text."""

    def test_parties(self):
        """Issuer and client blocks are read separately."""
        from extraction import extract_invoice_text

        invoice = extract_invoice_text(INVOICE_TEXT)

        assert invoice.issuer.name == "ENI S.p.A."
        assert invoice.issuer.tax_id == "IT00905811006"
        assert invoice.client.name == "Rossi Petroli S.r.l."
        assert invoice.client.address == "Via Appia 100, 04100 Latina (LT)"

    def test_totals_and_reference(self):
        """Italian-formatted totals and the DAS number are parsed."""
        from extraction import extract_invoice_text

        invoice = extract_invoice_text(INVOICE_TEXT)

        assert invoice.invoice_number == "FT-2025-0042"
        assert invoice.date == "2025-01-15"
        assert invoice.amounts.net == Decimal("14468.50")
        assert invoice.amounts.total == Decimal("17651.57")
        assert invoice.transport_details.reference_number == "25ITRMA00012345678"
        assert invoice.due_date == "2025-02-14"

    def test_line_quantity_from_unit(self):
        """The line quantity is the number next to the unit literal."""
        from extraction import extract_invoice_text

        invoice = extract_invoice_text(INVOICE_TEXT)

        assert len(invoice.lines) == 1
        line = invoice.lines[0]
        assert line.quantity == Decimal("15230")
        assert line.unit_of_measure == "LITRI"
        assert line.unit_value == Decimal("0.95")
        assert invoice.transport_details.quantity == Decimal("15230")

    def test_missing_date_gives_none(self):
        """Without a document date no record is produced."""
        from extraction import extract_invoice_text

        text = INVOICE_TEXT.replace("Data documento: 15/01/2025\n", "")

        assert extract_invoice_text(text) is None


class TestQuantityChain:
    """Test the ordered quantity fallback chain."""

    def test_unit_adjacent_wins(self):
        """A number next to a unit literal is preferred."""
        from extraction.rules import QuantityChain

        assert QuantityChain().find("Codice 12 - Totale 15.230 LITRI") == "15.230"

    def test_label_region(self):
        """Without a unit, a plausible number after the quantity label is used."""
        from extraction.rules import QuantityChain

        assert QuantityChain().find("Quantità\n  articolo 7\n  12.500") == "12.500"

    def test_structural_pattern(self):
        """The "<qty> x <price> <unit>" pattern is the last resort."""
        from extraction.rules import QuantityChain

        chain = QuantityChain(label="NON PRESENTE")

        assert chain.find("15230 x 0,95 L") == "15230"

    def test_small_quantity_kept(self):
        """When nothing is plausible the first non-zero candidate is used."""
        from extraction.rules import QuantityChain

        assert QuantityChain().find("Quantità: 50 LT") == "50"

    def test_nothing_found(self):
        from extraction.rules import QuantityChain

        assert QuantityChain().find("nessun numero") is None

    def test_threshold_read_from_settings(self, monkeypatch):
        """PLAUSIBLE_QUANTITY_MIN applies after reset_settings, without re-import."""
        from core.config import reset_settings
        from extraction.rules import QuantityChain

        text = "Consegna 50 LT, resto 500 LT"
        assert QuantityChain().find(text) == "500"

        monkeypatch.setenv("PLAUSIBLE_QUANTITY_MIN", "10")
        reset_settings()
        try:
            assert QuantityChain().find(text) == "50"
            assert QuantityChain(min_value=Decimal("100")).find(text) == "500"
        finally:
            monkeypatch.undo()
            reset_settings()


class TestLoadingNote:
    """Test loading note extraction."""

    def test_fields(self):
        """Identifiers, parties, weights and densities are read."""
        from extraction import extract_loading_note

        note = extract_loading_note(LOADING_NOTE)

        assert note.document_number == "LN-2025-0042"
        assert note.loading_date == "2025-01-15"
        assert note.carrier_name == "TRASPORTI ROSSI SRL"
        assert note.shipper_name == "ENI DEPOSITO ROMA"
        assert note.consignee_name == "DISTRIBUTORE LATINA"
        assert note.product_description == "GASOLIO AUTOTRAZIONE"
        assert note.gross_weight_kg == Decimal("12850")
        assert note.net_weight_kg == Decimal("12700")
        assert note.volume_liters == Decimal("15230")
        assert note.density_at_15c == Decimal("0.835")
        assert note.driver_name == "MARIO BIANCHI"
        assert "MARIO BIANCHI" in note.notes

    def test_net_weight_falls_back_to_gross(self):
        """Without a net weight the gross weight is used."""
        from extraction import extract_loading_note

        note = extract_loading_note(LOADING_NOTE.replace("Peso netto (kg): 12.700\n", ""))

        assert note.net_weight_kg == Decimal("12850")

    def test_unrecognized_text(self):
        from extraction import extract_loading_note

        assert extract_loading_note("nulla da vedere qui") is None


class TestFiscalManifest:
    """Test e-DAS extraction."""

    def test_document_info(self):
        """DAS number, version, invoice reference and timestamps are read."""
        from extraction import extract_fiscal_manifest

        edas = extract_fiscal_manifest(FISCAL_MANIFEST)
        info = edas.document_info

        assert info.das_number == "25ITRMA00012345678"
        assert info.version == "2"
        assert info.local_reference_number == "RL-7781"
        assert info.invoice_number == "FT-2025-0042"
        assert info.invoice_date == "2025-01-15"
        assert info.registration_datetime == "2025-01-15T07:45:00"
        assert info.shipping_datetime == "2025-01-15T08:30:00"
        assert info.validity_expiration_datetime == "2025-01-16T08:30:00"

    def test_blocks_do_not_bleed(self):
        """Sender and recipient names are read from their own blocks."""
        from extraction import extract_fiscal_manifest

        edas = extract_fiscal_manifest(FISCAL_MANIFEST)

        assert edas.sender_info.depot_code == "IT00RMA00123"
        assert edas.sender_info.name == "ENI S.p.A. Deposito di Roma"
        assert edas.recipient_info.name == "Rossi Petroli S.r.l."
        assert edas.recipient_info.tax_code == "01234567890"
        assert edas.transport_info.transport_mode == "Strada"
        assert edas.transport_info.vehicle_id == "AB123CD"
        assert edas.transport_info.first_carrier_name == "TRASPORTI ROSSI SRL"
        assert edas.transport_info.driver_name == "MARIO BIANCHI"

    def test_product_info(self):
        """Product quantities use the Italian number format."""
        from extraction import extract_fiscal_manifest

        product = extract_fiscal_manifest(FISCAL_MANIFEST).product_info

        assert product.product_code == "27102011"
        assert product.description == "GASOLIO AUTOTRAZIONE 10PPM"
        assert product.un_code == "1202"
        assert product.net_weight_kg == Decimal("12700")
        assert product.volume_at_ambient_l == Decimal("15310")
        assert product.volume_at_15c_l == Decimal("15230")
        assert product.density_at_15c == Decimal("0.835")

    def test_version_defaults_to_one(self):
        from extraction import extract_fiscal_manifest

        edas = extract_fiscal_manifest(FISCAL_MANIFEST.replace("Versione: 2\n", ""))

        assert edas.document_info.version == "1"


class TestStructuredIntake:
    """Test records built from structured JSON."""

    def test_camel_case_invoice(self):
        """camelCase keys and Italian number text are accepted."""
        from extraction import SchemaName, from_structured

        record = from_structured(SchemaName.INVOICE_XML, {
            "invoiceNumber": "FT-9",
            "date": "15/01/2025",
            "issuerInfo": {"name": "Q8 Italia", "taxCode": "IT00435970587"},
            "transportDetails": {"dasNumber": "25IT1", "quantity": "4.000"},
            "invoiceLines": [
                {"lineNumber": 1, "description": "GASOLIO", "quantity": 4000, "unitValue": 0.91},
                {"lineNumber": 2, "description": "SPESE", "quantity": 0},
            ],
        })

        assert record.date == "2025-01-15"
        assert record.issuer.tax_id == "IT00435970587"
        assert record.transport_details.reference_number == "25IT1"
        assert record.transport_details.quantity == Decimal("4000")
        assert [line.line_number for line in record.lines] == [1]

    def test_missing_mandatory_gives_none(self):
        from extraction import SchemaName, from_structured

        assert from_structured(SchemaName.INVOICE_XML, {"invoiceNumber": "FT-9"}) is None
        assert from_structured(SchemaName.INVOICE_XML, {}) is None

    def test_malformed_payload_raises(self):
        """Values of the wrong shape raise a ValidationError."""
        from extraction import SchemaName, from_structured

        with pytest.raises(ValidationError):
            from_structured(SchemaName.INVOICE_XML, {"invoiceNumber": "FT-9", "date": "2025-01-15", "invoiceLines": "x"})


class TestExtractionProperties:
    """Test properties that hold for every extractor."""

    @pytest.mark.parametrize("extract_name, text", [
        ("extract_invoice_xml", INVOICE_XML),
        ("extract_invoice_text", INVOICE_TEXT),
        ("extract_loading_note", LOADING_NOTE),
        ("extract_fiscal_manifest", FISCAL_MANIFEST),
    ])
    def test_idempotent(self, extract_name, text):
        """Extracting the same input twice gives equal records."""
        import extraction

        extract = getattr(extraction, extract_name)

        assert extract(text) == extract(text)

    @pytest.mark.parametrize("extract_name, text", [
        ("extract_invoice_xml", INVOICE_XML),
        ("extract_invoice_text", INVOICE_TEXT.replace("Totale imposta: 3.183,07", "Totale imposta: -3.183,07")),
        ("extract_loading_note", LOADING_NOTE.replace("12.700", "-12.700")),
        ("extract_fiscal_manifest", FISCAL_MANIFEST),
    ])
    def test_numbers_non_negative(self, extract_name, text):
        """No numeric field is ever negative."""
        import extraction

        record = getattr(extraction, extract_name)(text)

        assert all(n >= 0 for n in _numbers(record.model_dump()))
