"""TalentMail: outbound email delivery for recruiting workflows."""
